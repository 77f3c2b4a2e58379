"""LLM calls: test-paper generation and knowledge-point extraction.

Both go through one OpenAI-compatible ``/chat/completions`` request. Paper
generation never fails outright: without an API key, or when the request or
the returned JSON is unusable, the locally built sample paper is returned.
"""

from typing import Any, Optional

import httpx

from quizdoc.config import LLMConfig
from quizdoc.exceptions import JsonRecoveryFailed, LLMRequestError
from quizdoc.json_recovery import recover_json
from quizdoc.logger import Timer, get_logger
from quizdoc.paper import SECTION_LABELS, TestConfig, TestPaper, build_sample_paper

logger = get_logger(__name__)

KNOWLEDGE_POINTS_TEMPERATURE = 0.1
GARBLED_REPLY = "The document content is garbled, please check that the file is valid."

_PAPER_JSON_SHAPE = """{
  "title": "...", "subtitle": "...", "instructions": "...", "totalScore": 100,
  "listeningMaterial": "full listening script",
  "sections": [
    {"type": "listening", "title": "...", "questions": [
      {"id": 1, "question": "...", "answer": "...", "explanation": "...", "points": 5}]},
    {"type": "multipleChoice", "title": "...", "questions": [
      {"id": 2, "question": "...", "options": ["...", "...", "...", "..."],
       "answer": "A", "explanation": "...", "points": 5}]}
  ],
  "answerKey": [{"id": 1, "answer": "...", "explanation": "..."}]
}"""


class ChatClient:
    """Thin synchronous client for an OpenAI-compatible chat-completions API."""

    def __init__(self, config: LLMConfig, http_client: Optional[httpx.Client] = None):
        self.config = config
        self._http = http_client or httpx.Client(timeout=config.timeout_seconds)

    def complete(self, prompt: str, temperature: Optional[float] = None) -> Optional[str]:
        """Send one user prompt and return the first choice's message content.

        Raises:
            LLMRequestError: On transport errors, non-200 responses or an
                unexpected response body
        """
        url = f"{self.config.resolved_base_url}/chat/completions"
        headers = {"Authorization": f"Bearer {self.config.api_key}"}
        payload = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.config.temperature if temperature is None else temperature,
        }

        with Timer("chat completion") as timer:
            try:
                response = self._http.post(url, json=payload, headers=headers)
            except httpx.HTTPError as exc:
                logger.error(
                    "Chat completion request failed",
                    extra_data={"model": self.config.model, "error": str(exc)},
                )
                raise LLMRequestError(f"Request to {url} failed: {exc}") from exc

        if response.status_code != 200:
            raise LLMRequestError(f"{response.status_code}: {_error_detail(response)}")

        try:
            content = response.json()["choices"][0]["message"].get("content")
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
            raise LLMRequestError("Unexpected chat completion response body") from exc

        logger.info(
            "Chat completion received",
            extra_data={
                "model": self.config.model,
                "characters": len(content or ""),
                "elapsed_ms": timer.get_elapsed_ms(),
            },
        )
        return content

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ChatClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        return str(data["error"].get("message", ""))
    return response.text[:200]


def _complete(
    llm_config: LLMConfig, client: Optional[ChatClient], prompt: str, temperature: float
) -> Optional[str]:
    """Use the caller's client, or a short-lived one that is closed afterwards."""
    if client is not None:
        return client.complete(prompt, temperature=temperature)
    with ChatClient(llm_config) as owned_client:
        return owned_client.complete(prompt, temperature=temperature)


def build_test_prompt(config: TestConfig) -> str:
    """Prompt asking for a primary-school English paper as JSON."""
    lines = [
        "Generate a primary school English test paper and return it as JSON.",
        "",
        f"- Grade: {config.grade}",
        f"- Difficulty: {config.difficulty}",
        f"- Theme: {config.theme}",
        f"- Key knowledge points: {config.knowledge_points}",
        f"- Total score: {config.total_score:g}",
        "",
        "Question types, in this order:",
    ]
    for position, (section_type, type_config) in enumerate(config.question_types.in_paper_order(), start=1):
        lines.append(
            f"{position}. {SECTION_LABELS[section_type]} ({section_type.value}): "
            f"{type_config.count} questions, {type_config.score:g} points each"
        )
    lines += [
        "",
        "Requirements:",
        "1. Include the full listening script as listeningMaterial when there are listening questions.",
        "2. Multiple choice questions have exactly 4 options, without A/B/C/D labels.",
        "3. Every question has an answer and a detailed explanation.",
        "4. Listening comes first and writing comes last.",
        "5. Include an answerKey entry for every question.",
        "",
        "JSON shape:",
        _PAPER_JSON_SHAPE,
    ]
    return "\n".join(lines)


def build_knowledge_points_prompt(text: str) -> str:
    return "\n".join(
        [
            "Analyse the document below and list the key knowledge points for primary school English teaching.",
            f'If the content is mostly garbled or unreadable, reply only with: "{GARBLED_REPLY}"',
            "",
            "Document:",
            text,
            "",
            "Cover vocabulary and phrases, communicative functions, core grammar, cultural background,",
            "learning focus and difficulties. Cover the whole document, stay concise, avoid repetition,",
            "and keep it under 300 words. Output plain text without formatting marks.",
        ]
    )


def generate_test_paper(
    config: TestConfig, llm_config: LLMConfig, client: Optional[ChatClient] = None
) -> TestPaper:
    """Generate a test paper with the LLM, falling back to the sample paper.

    Args:
        config: Grade, difficulty, theme and question mix requested
        llm_config: API connection settings
        client: Chat client to use (optional, created from ``llm_config``)

    Returns:
        The LLM's paper, or ``build_sample_paper(config)`` when no API key is
        configured or the request or its JSON cannot be used
    """
    if not llm_config.api_key:
        logger.warning("API key missing, falling back to local sample paper")
        return build_sample_paper(config)

    try:
        content = _complete(llm_config, client, build_test_prompt(config), llm_config.temperature)
        payload: Any = recover_json(content)
        paper = TestPaper.from_dict(payload)
    except (LLMRequestError, JsonRecoveryFailed, ValueError) as exc:
        logger.warning(
            "Test paper generation failed, falling back to sample paper",
            extra_data={"model": llm_config.model, "error_type": type(exc).__name__, "error": str(exc)},
        )
        return build_sample_paper(config)

    logger.info(
        "Generated test paper",
        extra_data={"model": llm_config.model, "sections": len(paper.sections), "questions": paper.question_count},
    )
    return paper


def extract_knowledge_points(text: str, llm_config: LLMConfig, client: Optional[ChatClient] = None) -> str:
    """Summarize a lesson document's knowledge points with the LLM.

    Raises:
        ValueError: If the text or the API key is missing
        LLMRequestError: If the request fails or returns no content
    """
    if not text or not llm_config.api_key:
        raise ValueError("Missing required parameters: text and api_key")

    content = _complete(llm_config, client, build_knowledge_points_prompt(text), KNOWLEDGE_POINTS_TEMPERATURE)
    if not content:
        raise LLMRequestError("No content received from API.")
    return content.strip()
