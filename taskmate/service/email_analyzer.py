"""Claude-based email analysis."""
import json
import re
from typing import Any, Optional
from taskmate.config import ANTHROPIC_API_KEY, CLAUDE_MODEL
from taskmate.utils.logger import get_logger

logger = get_logger("email_analyzer")

PRIORITIES = ("important", "normal")
CATEGORIES = ("Academic", "Career", "Personal", "Other")

ANALYSIS_PROMPT = """Analyze this email and provide:
1. A brief summary (2-3 sentences max)
2. Priority level: "important" or "normal"
3. Category: "Academic", "Career", "Personal", or "Other"

Email details:
Subject: {subject}
To: {to}
Body: {body}

Respond in JSON format:
{{
  "summary": "brief summary here",
  "priority": "important" or "normal",
  "category": "Academic" or "Career" or "Personal" or "Other"
}}"""

JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


def fallback_analysis(body: str) -> dict:
    return {
        "summary": body[:150] + "...",
        "priority": "normal",
        "category": "Other",
    }


def extract_json(text: str) -> Optional[dict]:
    """
    Parse the outermost ``{...}`` block of a model reply; None when absent or invalid.
    """
    match = JSON_BLOCK.search(text or "")
    if not match:
        return None
    try:
        parsed = json.loads(match.group())
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


class EmailAnalyzer:
    """Summarises an email and classifies its priority and category."""

    def __init__(self, client: Any = None, api_key: Optional[str] = None, model: str = CLAUDE_MODEL, max_tokens: int = 500):
        self._client = client
        self.api_key = api_key if api_key is not None else ANTHROPIC_API_KEY
        self.model = model
        self.max_tokens = max_tokens

    @property
    def client(self):
        if self._client is None and self.api_key:
            import anthropic

            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def analyze(self, subject: str, to: str, body: str) -> dict:
        """
        Returns {"summary", "priority", "category"}; falls back to a truncated
        body with normal/Other whenever Claude is unavailable or answers badly.
        """
        analysis = fallback_analysis(body)
        if self.client is None:
            return analysis

        prompt = ANALYSIS_PROMPT.format(subject=subject, to=to, body=body[:1000])
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
            content = response.content[0]
        except Exception as e:
            logger.error(f"Error analyzing email with Claude: {e}")
            return analysis

        if getattr(content, "type", None) != "text":
            return analysis

        parsed = extract_json(content.text)
        if parsed is None:
            logger.warning(f"Claude reply for '{subject}' had no JSON object")
            return analysis

        summary = parsed.get("summary")
        if isinstance(summary, str) and summary.strip():
            analysis["summary"] = summary.strip()
        if parsed.get("priority") in PRIORITIES:
            analysis["priority"] = parsed["priority"]
        if parsed.get("category") in CATEGORIES:
            analysis["category"] = parsed["category"]
        return analysis


_analyzer: Optional[EmailAnalyzer] = None


def get_email_analyzer() -> EmailAnalyzer:
    global _analyzer
    if _analyzer is None:
        _analyzer = EmailAnalyzer()
    return _analyzer
