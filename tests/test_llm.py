"""
Tests for the LLM client. Requests are served by httpx.MockTransport.
"""

import json

import httpx
import pytest

from quizdoc.config import LLMConfig
from quizdoc.exceptions import LLMRequestError
from quizdoc.llm import (
    KNOWLEDGE_POINTS_TEMPERATURE,
    ChatClient,
    build_test_prompt,
    extract_knowledge_points,
    generate_test_paper,
)
from quizdoc.paper import QuestionTypeConfig, QuestionTypes, SectionType, TestConfig, build_sample_paper

PAPER = {
    "title": "Grade 4 English Test",
    "subtitle": "Unit 2",
    "instructions": "Answer all questions.",
    "totalScore": 10,
    "sections": [
        {
            "type": "fillInBlank",
            "title": "Part I. Fill in the Blanks",
            "questions": [{"id": 1, "question": "She _____ a nurse.", "answer": "is", "explanation": "", "points": 10}],
        }
    ],
    "answerKey": [{"id": 1, "answer": "is", "explanation": ""}],
}


def completion(content):
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]}


class Recorder:
    """Mock transport handler that records requests."""

    def __init__(self, response):
        self.response = response
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    @property
    def last_payload(self):
        return json.loads(self.requests[-1].content)


def make_client(llm_config, response):
    recorder = Recorder(response)
    client = ChatClient(llm_config, http_client=httpx.Client(transport=httpx.MockTransport(recorder)))
    return client, recorder


@pytest.fixture
def llm_config():
    return LLMConfig(api_key="sk-test", model="deepseek-chat")


@pytest.fixture
def paper_config():
    return TestConfig(
        grade="4",
        difficulty="low",
        theme="Jobs",
        knowledge_points="be verbs",
        total_score=10,
        question_types=QuestionTypes(fill_in_blank=QuestionTypeConfig(count=1, score=10)),
    )


@pytest.mark.unit
class TestLLMConfig:
    def test_deepseek_default_base_url(self):
        assert LLMConfig(model="deepseek-reasoner").resolved_base_url == "https://api.deepseek.com/v1"

    def test_other_models_use_openai_url(self):
        assert LLMConfig(model="gpt-4o-mini").resolved_base_url == "https://api.openai.com/v1"

    def test_explicit_base_url_wins(self):
        config = LLMConfig(model="moonshot-v1-8k", base_url="https://api.moonshot.cn/v1/")

        assert config.resolved_base_url == "https://api.moonshot.cn/v1"


@pytest.mark.unit
class TestChatClient:
    """Tests for ChatClient.complete."""

    def test_posts_chat_completion(self, llm_config):
        client, recorder = make_client(llm_config, httpx.Response(200, json=completion("Hi!")))

        assert client.complete("Say hi", temperature=0.3) == "Hi!"

        request = recorder.requests[0]
        assert str(request.url) == "https://api.deepseek.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert recorder.last_payload == {
            "model": "deepseek-chat",
            "messages": [{"role": "user", "content": "Say hi"}],
            "temperature": 0.3,
        }

    def test_default_temperature_from_config(self, llm_config):
        client, recorder = make_client(llm_config, httpx.Response(200, json=completion("ok")))

        client.complete("prompt")

        assert recorder.last_payload["temperature"] == 0.7

    def test_http_error_status(self, llm_config):
        client, _ = make_client(llm_config, httpx.Response(401, json={"error": {"message": "Invalid API key"}}))

        with pytest.raises(LLMRequestError, match="401: Invalid API key"):
            client.complete("prompt")

    def test_transport_error(self, llm_config):
        client, _ = make_client(llm_config, httpx.ConnectError("connection refused"))

        with pytest.raises(LLMRequestError, match="connection refused"):
            client.complete("prompt")

    def test_unexpected_body(self, llm_config):
        client, _ = make_client(llm_config, httpx.Response(200, json={"choices": []}))

        with pytest.raises(LLMRequestError):
            client.complete("prompt")


@pytest.mark.unit
class TestGenerateTestPaper:
    """Tests for generate_test_paper and its sample-paper fallback."""

    def test_uses_llm_paper(self, paper_config, llm_config):
        content = "\n\n```json\n" + json.dumps(PAPER) + "\n```\n"
        client, recorder = make_client(llm_config, httpx.Response(200, json=completion(content)))

        paper = generate_test_paper(paper_config, llm_config, client=client)

        assert paper.title == "Grade 4 English Test"
        assert paper.sections[0].type is SectionType.FILL_IN_BLANK
        assert recorder.last_payload["temperature"] == 0.7

    def test_double_encoded_paper(self, paper_config, llm_config):
        content = json.dumps(json.dumps(PAPER))
        client, _ = make_client(llm_config, httpx.Response(200, json=completion(content)))

        assert generate_test_paper(paper_config, llm_config, client=client).title == "Grade 4 English Test"

    def test_missing_api_key_skips_request(self, paper_config):
        client, recorder = make_client(LLMConfig(), httpx.Response(200, json=completion("{}")))

        paper = generate_test_paper(paper_config, LLMConfig(), client=client)

        assert paper == build_sample_paper(paper_config)
        assert recorder.requests == []

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, text="upstream error"),
            httpx.Response(200, json=completion("I cannot produce JSON today.")),
            httpx.Response(200, json=completion(json.dumps({"title": "no sections"}))),
            httpx.Response(200, json=completion(None)),
        ],
    )
    def test_falls_back_to_sample_paper(self, paper_config, llm_config, response):
        client, _ = make_client(llm_config, response)

        paper = generate_test_paper(paper_config, llm_config, client=client)

        assert paper == build_sample_paper(paper_config)

    def test_prompt_lists_question_mix(self, paper_config):
        prompt = build_test_prompt(paper_config)

        assert "Fill in the Blanks (fillInBlank): 1 questions, 10 points each" in prompt
        assert "Theme: Jobs" in prompt
        assert prompt.index("Listening") < prompt.index("Writing")


@pytest.mark.unit
class TestExtractKnowledgePoints:
    """Tests for extract_knowledge_points."""

    def test_returns_trimmed_summary(self, llm_config):
        client, recorder = make_client(llm_config, httpx.Response(200, json=completion("  1. be verbs\n2. jobs  ")))

        points = extract_knowledge_points("She is a nurse. He is a doctor.", llm_config, client=client)

        assert points == "1. be verbs\n2. jobs"
        assert recorder.last_payload["temperature"] == KNOWLEDGE_POINTS_TEMPERATURE
        assert "She is a nurse." in recorder.last_payload["messages"][0]["content"]

    @pytest.mark.parametrize("text, api_key", [("", "sk-test"), ("Some text", "")])
    def test_requires_text_and_key(self, text, api_key):
        with pytest.raises(ValueError):
            extract_knowledge_points(text, LLMConfig(api_key=api_key))

    def test_empty_completion(self, llm_config):
        client, _ = make_client(llm_config, httpx.Response(200, json=completion("")))

        with pytest.raises(LLMRequestError, match="No content"):
            extract_knowledge_points("Some text", llm_config, client=client)

    def test_request_failure_propagates(self, llm_config):
        client, _ = make_client(llm_config, httpx.Response(503, text="busy"))

        with pytest.raises(LLMRequestError):
            extract_knowledge_points("Some text", llm_config, client=client)


@pytest.mark.unit
class TestClientLifecycle:
    """Clients created inside the helpers are closed; injected ones are left open."""

    @pytest.fixture
    def created_clients(self, monkeypatch):
        real_client = httpx.Client
        created = []
        recorder = Recorder(httpx.Response(200, json=completion("1. jobs")))

        def make_http_client(**kwargs):
            http_client = real_client(transport=httpx.MockTransport(recorder), **kwargs)
            created.append(http_client)
            return http_client

        monkeypatch.setattr("quizdoc.llm.httpx.Client", make_http_client)
        return created

    def test_knowledge_points_closes_own_client(self, llm_config, created_clients):
        extract_knowledge_points("She is a nurse.", llm_config)

        assert len(created_clients) == 1
        assert created_clients[0].is_closed

    def test_generate_closes_own_client_on_fallback(self, paper_config, llm_config, created_clients):
        generate_test_paper(paper_config, llm_config)

        assert len(created_clients) == 1
        assert created_clients[0].is_closed

    def test_injected_client_left_open(self, llm_config):
        client, _ = make_client(llm_config, httpx.Response(200, json=completion("1. jobs")))

        extract_knowledge_points("She is a nurse.", llm_config, client=client)

        assert not client._http.is_closed

    def test_context_manager_closes(self, llm_config):
        client, _ = make_client(llm_config, httpx.Response(200, json=completion("ok")))

        with client:
            client.complete("prompt")

        assert client._http.is_closed
