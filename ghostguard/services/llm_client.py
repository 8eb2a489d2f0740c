import json
import logging
import re
import time
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from ghostguard.config import settings
from ghostguard.errors import AIUnavailable, InvalidRequest, MalformedAIResponse
from ghostguard.schemas.threat_schemas import AIAnalysis, ThreatLevel
from ghostguard.utils.logging_config import metrics

logger = logging.getLogger(__name__)


RESPONSE_SCHEMA = (
    "Format your response as JSON with the following structure:\n"
    "{\n"
    '  "threatAnalysis": "detailed explanation of threats detected",\n'
    '  "securityRecommendations": ["recommendation 1", "recommendation 2", "recommendation 3"],\n'
    '  "confidenceScore": number\n'
    "}\n"
    "Return ONLY the JSON object (no markdown)."
)

DEFAULT_SECURITY_TIPS = [
    "Keep your software updated",
    "Use strong passwords",
    "Enable two-factor authentication",
]

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)
_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def fallback_analysis(reason: str = "") -> AIAnalysis:
    """
    Zero-confidence result used when the model reply cannot be parsed.
    Zero confidence means insufficient evidence, not confirmed safe.
    """
    analysis = "Failed to parse AI analysis. The response wasn't in the expected format."
    if reason:
        analysis = f"{analysis} ({reason})"
    return AIAnalysis(
        threat_analysis=analysis,
        security_recommendations=["Try scanning again", "Contact support if the issue persists"],
        confidence_score=0,
        degraded=True,
    )


def build_prompt(url: Optional[str] = None, content: Optional[str] = None) -> str:
    if url:
        subject = f'Analyze this URL for potential security threats: "{url}".'
        target = "URL"
    else:
        subject = f'Analyze this content for potential security threats: "{content}".'
        target = "content"
    return (
        f"{subject}\n"
        f"Provide a detailed assessment of whether this {target} might be phishing, malware, or legitimate.\n"
        "Include specific indicators that led to your conclusion.\n"
        "Give a confidence score between 0-100 (higher means more confident in the threat assessment).\n"
        f"{RESPONSE_SCHEMA}"
    )


def parse_analysis(text: str) -> AIAnalysis:
    """
    Parse a model reply into an AIAnalysis.

    Raises:
        MalformedAIResponse: reply is not JSON or lacks the expected fields
    """
    cleaned = _strip_wrapping(text or "")
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError:
        # Some models wrap the object in prose; try the outermost braces
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise MalformedAIResponse("Response is not valid JSON", raw=text)
        try:
            payload = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError as e:
            raise MalformedAIResponse(f"Response is not valid JSON: {e}", raw=text) from e

    if not isinstance(payload, dict):
        raise MalformedAIResponse("Response JSON is not an object", raw=text)

    try:
        return AIAnalysis.model_validate(payload)
    except ValidationError as e:
        raise MalformedAIResponse(f"Response is missing expected fields: {e.error_count()} error(s)", raw=text) from e


def _strip_wrapping(text: str) -> str:
    text = _THINK_BLOCK.sub("", text).strip()
    return _CODE_FENCE.sub("", text).strip()


class LLMClient:
    """
    Wrapper around an OpenAI-compatible chat endpoint for URL/content threat analysis.
    """

    def __init__(self, model: str | None = None, client: Any = None):
        self.client = client or OpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.ai_timeout_seconds,
            max_retries=settings.ai_max_retries,
        )
        self.model = model or settings.openai_model

    def _complete(self, prompt: str, temperature: float, max_tokens: int, top_p: float | None = None) -> str:
        params: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if top_p is not None:
            params["top_p"] = top_p

        start = time.time()
        try:
            response = self.client.chat.completions.create(**params)
        except OpenAIError as e:
            metrics.increment("scan.ai.unavailable")
            logger.warning(f"AI endpoint unavailable: {e}")
            raise AIUnavailable(f"Failed to analyze with AI: {e}") from e
        finally:
            metrics.timing("scan.ai.latency", time.time() - start)

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    def analyze(self, url: Optional[str] = None, content: Optional[str] = None) -> AIAnalysis:
        """
        Judge a URL or a piece of content.

        Exactly one of url/content must be given.

        Raises:
            InvalidRequest: neither or both of url/content given
            AIUnavailable: the endpoint could not be called
        """
        if bool(url) == bool(content):
            raise InvalidRequest("Exactly one of 'url' or 'content' must be provided")

        metrics.increment("scan.ai.calls")
        text = self._complete(
            build_prompt(url=url, content=content),
            temperature=settings.ai_temperature,
            max_tokens=settings.ai_max_tokens,
            top_p=settings.ai_top_p,
        )

        try:
            return parse_analysis(text)
        except MalformedAIResponse as e:
            metrics.increment("scan.ai.degraded")
            logger.error(f"Failed to parse AI response as JSON: {e}")
            return fallback_analysis()

    def get_security_tips(self, level: ThreatLevel | str) -> List[str]:
        """Three tips for a severity band; static defaults on any failure."""
        level = ThreatLevel(level).value
        prompt = (
            f"Provide 3 security tips for users dealing with {level} level security threats.\n"
            "Make them specific, actionable, and easy to understand.\n"
            "Format the response as a JSON array of strings."
        )
        try:
            text = self._complete(prompt, temperature=0.7, max_tokens=1024)
        except AIUnavailable:
            return list(DEFAULT_SECURITY_TIPS)

        try:
            tips = json.loads(_strip_wrapping(text))
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse security tips as JSON: {e}")
            return list(DEFAULT_SECURITY_TIPS)

        if not isinstance(tips, list) or not all(isinstance(t, str) for t in tips) or not tips:
            return list(DEFAULT_SECURITY_TIPS)
        return tips


_default_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    global _default_client
    if _default_client is None:
        _default_client = LLMClient()
    return _default_client


def analyze_with_ai(url: Optional[str] = None, content: Optional[str] = None) -> AIAnalysis:
    return get_llm_client().analyze(url=url, content=content)
