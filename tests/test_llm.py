import pytest
import requests

from conftest import FakeSession, make_response
from sheetscribe.llm import TextGenerationClient
from sheetscribe.prompts import INSIGHT, RANK, SUMMARIZE, TASKS, normalize_rank


def test_generate_sends_single_turn_request():
    session = FakeSession(make_response(body={"choices": [{"message": {"role": "assistant", "content": "Short summary"}}]}))
    client = TextGenerationClient("sk-test", session=session)

    assert client.generate("Summarise this", 0.3, 3050) == "Short summary"
    call = session.calls[0]
    assert call["url"] == "https://api.openai.com/v1/chat/completions"
    assert call["headers"]["Authorization"] == "Bearer sk-test"
    assert call["json"] == {
        "model": "gpt-4-0613",
        "messages": [{"role": "user", "content": "Summarise this"}],
        "temperature": 0.3,
        "max_tokens": 3050,
    }


def test_generate_from_settings(settings):
    session = FakeSession(make_response(body={"choices": [{"message": {"content": "x"}}]}))
    client = TextGenerationClient.from_settings(settings, session)
    client.generate("p", 0.1, 10)
    assert session.calls[0]["headers"]["Authorization"] == "Bearer sk-test"


def test_rate_limited_response_raises():
    session = FakeSession(make_response(status_code=429, body={"error": {"message": "Rate limit"}}))
    with pytest.raises(requests.HTTPError):
        TextGenerationClient("sk-test", session=session).generate("p", 0.3, 10)


def test_missing_choices_raise():
    session = FakeSession(make_response(body={"choices": []}))
    with pytest.raises(KeyError):
        TextGenerationClient("sk-test", session=session).generate("p", 0.3, 10)


def test_prompt_tasks_render():
    prompt, temperature, max_tokens = SUMMARIZE.render("the call")
    assert prompt.endswith("Transcription: the call")
    assert (temperature, max_tokens) == (0.3, 3050)
    assert "from 0 (worst) to 10 (best)" in RANK.render("x")[0]
    assert INSIGHT.render("x")[0].endswith("on improvement: x")
    assert set(TASKS) == {"summarize", "rank", "insight"}


@pytest.mark.parametrize(
    "reply, expected",
    [("8", "8"), ("Rating: 7/10", "7"), ("12", "10"), ("-3", "0"), ("no idea", "no idea")],
)
def test_normalize_rank(reply, expected):
    assert normalize_rank(reply) == expected


def test_finish_strips_and_postprocesses():
    assert RANK.finish(" 9\n") == "9"
    assert SUMMARIZE.finish("  text \n") == "text"
