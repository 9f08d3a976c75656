"""Single-shot LLM prompts (company summary, spam verdict) over an OpenAI-compatible API."""
from __future__ import annotations

import json
from typing import Any, Mapping

from openai import OpenAI

SUMMARY_PROMPT = """Analyze and summarize the following company career/about page content. Focus on these key aspects:

1. Company Overview: What does the company do and what is their mission?
2. Company Culture and Values: What are their core values and workplace culture?
3. Growth and Development: What opportunities exist for career growth?
4. Benefits and Perks: What do they offer employees?

Please provide a professional, concise summary in 3-4 paragraphs. If any information is missing, focus on what is available.

Content to analyze: {content}"""

SPAM_PROMPT = """Analyze this job posting for potential spam indicators. Consider:
1. Unrealistic salary promises
2. Vague job descriptions
3. Suspicious requirements
4. Poor grammar or unprofessional language
5. Requests for personal/financial information

Job details: {details}

Return only "true" if likely spam or "false" if likely legitimate."""


class LLMClient:
    def __init__(self, api_key: str, model: str, base_url: str, timeout: float = 30.0):
        self.model = model
        self._client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    def complete(self, prompt: str, max_tokens: int = 800) -> str:
        r = self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
        )
        return (r.choices[0].message.content or "").strip()

    def summarize_company(self, page_text: str) -> str:
        return self.complete(SUMMARY_PROMPT.format(content=page_text))

    def is_spam(self, details: Mapping[str, Any]) -> bool:
        answer = self.complete(SPAM_PROMPT.format(details=json.dumps(dict(details))), max_tokens=5)
        return answer.strip().strip('."').lower() == "true"
