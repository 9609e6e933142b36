"""
LLM API Client

Any OpenAI-compatible endpoint works (DeepSeek by default), so we use the
openai library.

COST OPTIMIZATION:
- Keep prompts short and structured
- Cap resume text sent to the model
- Never re-parse the same document (see ai_parsing_service)

The model is used ONLY to turn resume text into candidate fields.
The relational store is the source of truth.
"""
import json
import logging

from openai import OpenAI, OpenAIError

from app.core.config import get_settings

logger = logging.getLogger(__name__)

MAX_RESUME_CHARS = 9000

RESUME_SYSTEM_PROMPT = """You are a senior recruitment expert. Parse the resume and return ONLY valid JSON.
Rules:
- skills: real professional skills only (tools, technologies, methodologies, domain expertise),
  1-4 words each, max 25; never company names, cities or sentences
- total_experience: years as decimal (5.5 = 5 years 6 months), null if unknown
- current_ctc / expected_ctc: Lakhs Per Annum as decimal, null if not mentioned
- notice_period: days (30, 45, 60, 90), null if not found
- education_level: one of "High School", "Diploma", "Bachelor", "Master", "PhD" or ""
- current_location: city name only
- confidence: 0.0-1.0, how completely the resume was parsed
Output format:
{
  "full_name": "", "email": "", "phone": "", "current_location": "",
  "current_company": "", "current_designation": "",
  "total_experience": null, "current_ctc": null, "expected_ctc": null, "notice_period": null,
  "education_level": "", "education_degree": "", "education_field": "", "education_institution": "",
  "skills": [], "sector": "", "confidence": 0.0
}
Return ONLY the JSON, no explanation."""


class LLMClient:
    """
    Wrapper for the chat completions API with cost-optimized methods.
    """

    def __init__(self, client: OpenAI = None, model: str = None):
        settings = get_settings()
        self.client = client or OpenAI(
            api_key=settings.ai_api_key,
            base_url=settings.ai_base_url
        )
        self.model = model or settings.ai_model

    def _call_api(self, system_prompt: str, user_content: str, max_tokens: int = 1000) -> str:
        """
        Internal method to call the chat API.
        Returns raw text response.
        """
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content}
            ],
            max_tokens=max_tokens,
            temperature=0.1  # Low temp for consistent structured output
        )
        return response.choices[0].message.content

    def _extract_json(self, text: str) -> dict:
        """
        Extract JSON from API response.
        Handles cases where model wraps JSON in markdown code blocks.
        """
        text = text.strip()
        if text.startswith("```json"):
            text = text[7:]
        if text.startswith("```"):
            text = text[3:]
        if text.endswith("```"):
            text = text[:-3]

        return json.loads(text.strip())

    def parse_resume(self, resume_text: str) -> dict:
        """
        Parse resume text and extract candidate fields.
        """
        response = self._call_api(
            RESUME_SYSTEM_PROMPT,
            "RESUME TEXT:\n" + resume_text[:MAX_RESUME_CHARS],
            max_tokens=2000
        )
        return self._extract_json(response)

    def test_connection(self) -> bool:
        """Test if the API is reachable"""
        try:
            response = self._call_api(
                "You are a test assistant.",
                "Reply with exactly: OK",
                max_tokens=10
            )
            return "OK" in response.upper()
        except OpenAIError as e:
            logger.warning("LLM connection failed: %s", e)
            return False


# Singleton instance
_llm_client: LLMClient = None


def get_llm_client() -> LLMClient:
    """Get or create LLM client (singleton pattern)"""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client
