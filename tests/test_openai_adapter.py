# ===============================================
# tests/test_openai_adapter.py
# OpenAIAdapter against a fake SDK client: request
# shapes, response cleanup and stream normalization.
# ===============================================

from types import SimpleNamespace

import pytest

from src.gateway.adapters.openai_adapter import OpenAIAdapter
from src.gateway.errors import ProviderError
from src.gateway.types import (
    ChunkType,
    ModelConfig,
    ModelFileInput,
    ModelInput,
    ModelMessage,
    Provider,
    ToolSchema,
)
from src.settings import settings

CONFIG = ModelConfig(provider=Provider.OPENAI, model="gpt-4o-mini", temperature=0.2, max_tokens=1234, top_p=0.9)
PDF = ModelFileInput(filename="resume.pdf", data="JVBERi0xLjQ=")


async def _aiter(items):
    for item in items:
        yield item


class FakeEndpoint:
    """Stands in for client.responses / client.chat.completions."""

    def __init__(self, result=None, events=None, error=None):
        self.result = result
        self.events = events or []
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        if kwargs.get("stream"):
            return _aiter(self.events)
        return self.result


def _client(responses=None, completions=None):
    return SimpleNamespace(
        responses=responses or FakeEndpoint(),
        chat=SimpleNamespace(completions=completions or FakeEndpoint()),
    )


def _chat_result(text):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15),
    )


def _responses_result(text, output=None):
    return SimpleNamespace(
        output_text=text,
        output=output or [],
        usage=SimpleNamespace(input_tokens=100, output_tokens=50, total_tokens=150),
    )


def _event(kind, **kw):
    return SimpleNamespace(type=kind, **kw)


def _input(files=None, tools=None):
    return ModelInput(
        messages=[ModelMessage(role="system", content="be strict"), ModelMessage(role="user", content="analyze")],
        files=files,
        tools=tools,
    )


@pytest.mark.asyncio
async def test_plain_request_uses_chat_completions():
    completions = FakeEndpoint(result=_chat_result('```json\n{"overall_score": 85}\n```'))
    adapter = OpenAIAdapter(CONFIG, client=_client(completions=completions))

    resp = await adapter.generate(_input())

    assert resp.content == '{"overall_score":85}'
    assert resp.provider == "openai"
    assert resp.usage.total_tokens == 15
    call = completions.calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert call["max_tokens"] == 1234
    assert call["top_p"] == 0.9
    assert call["messages"][0] == {"role": "system", "content": "be strict"}


@pytest.mark.asyncio
async def test_file_request_uses_responses_api_with_data_url():
    responses = FakeEndpoint(result=_responses_result('{"ok": true}'))
    adapter = OpenAIAdapter(CONFIG, client=_client(responses=responses))

    resp = await adapter.generate(_input(files=[PDF]))

    assert resp.content == '{"ok":true}'
    assert resp.usage.prompt_tokens == 100
    call = responses.calls[0]
    assert call["max_output_tokens"] == 1234
    assert call["store"] is True
    system, user = call["input"]
    assert system["content"][0] == {"type": "input_text", "text": "be strict"}
    file_part, text_part = user["content"]
    assert file_part["type"] == "input_file"
    assert file_part["filename"] == "resume.pdf"
    assert file_part["file_data"] == "data:application/pdf;base64,JVBERi0xLjQ="
    assert text_part == {"type": "input_text", "text": "analyze"}
    assert "tools" not in call


@pytest.mark.asyncio
async def test_tool_request_maps_tools():
    responses = FakeEndpoint(result=_responses_result('{"job_title": "Engineer"}'))
    adapter = OpenAIAdapter(CONFIG, client=_client(responses=responses))
    tools = [
        ToolSchema(name="web_search", builtin=True),
        ToolSchema(name="saveJob", description="save", parameters={"type": "object", "properties": {}}),
    ]

    await adapter.generate(_input(tools=tools))

    call = responses.calls[0]
    assert call["tools"][0] == {"type": "web_search_preview"}
    assert call["tools"][1]["type"] == "function"
    assert call["tools"][1]["name"] == "saveJob"
    assert [m["role"] for m in call["input"]] == ["system", "user"]


@pytest.mark.asyncio
async def test_function_call_arguments_become_content():
    call_item = SimpleNamespace(type="function_call", arguments='{"analysis_headline": "Sharper"}')
    responses = FakeEndpoint(result=_responses_result("", output=[call_item]))
    adapter = OpenAIAdapter(CONFIG, client=_client(responses=responses))

    resp = await adapter.generate(_input(tools=[ToolSchema(name="displayImprovedResume", parameters={})]))

    assert resp.content == '{"analysis_headline":"Sharper"}'


@pytest.mark.asyncio
async def test_sdk_failure_raises_provider_error():
    completions = FakeEndpoint(error=RuntimeError("rate limited"))
    adapter = OpenAIAdapter(CONFIG, client=_client(completions=completions))

    with pytest.raises(ProviderError) as exc:
        await adapter.generate(_input())

    assert exc.value.provider == "openai"
    assert "rate limited" in str(exc.value)


@pytest.mark.asyncio
async def test_missing_key_is_a_provider_error(monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
    adapter = OpenAIAdapter(CONFIG)

    with pytest.raises(ProviderError, match="Missing OpenAI API key"):
        await adapter.generate(_input())


@pytest.mark.asyncio
async def test_stream_emits_partials_then_complete(drain):
    events = [
        _event("response.created"),
        _event("response.output_text.delta", delta='{"overall_score": 8'),
        _event("response.output_text.delta", delta='5, "main_roast": "Bad"'),
        _event("response.output_text.delta", delta="}"),
        _event("response.completed"),
    ]
    adapter = OpenAIAdapter(CONFIG, client=_client(responses=FakeEndpoint(events=events)))

    out = await drain(adapter.generate_stream(_input(files=[PDF])))

    assert [c.type for c in out] == [ChunkType.PARTIAL_ANALYSIS] * 3 + [ChunkType.COMPLETE_ANALYSIS]
    assert out[0].data == {"overall_score": 8}
    assert out[1].data == {"overall_score": 85, "main_roast": "Bad"}
    assert [c.progress for c in out] == [5, 10, 15, 100]
    assert out[-1].data == {"overall_score": 85, "main_roast": "Bad"}


@pytest.mark.asyncio
async def test_stream_error_event_terminates_immediately(drain):
    events = [
        _event("response.output_text.delta", delta='{"ats_score": 40'),
        _event("error", message="boom"),
        _event("response.output_text.delta", delta=", "),
        _event("response.completed"),
    ]
    adapter = OpenAIAdapter(CONFIG, client=_client(responses=FakeEndpoint(events=events)))

    out = await drain(adapter.generate_stream(_input(files=[PDF])))

    assert len(out) == 2
    assert out[-1].type == ChunkType.ERROR
    assert out[-1].error == "boom"


@pytest.mark.asyncio
async def test_plain_stream_completes_when_transport_closes(drain):
    def delta(text):
        return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])

    parts = [delta('{"score_category": '), delta('"Good"}'), SimpleNamespace(choices=[])]
    adapter = OpenAIAdapter(CONFIG, client=_client(completions=FakeEndpoint(events=parts)))

    out = await drain(adapter.generate_stream(_input()))

    assert out[-1].type == ChunkType.COMPLETE_ANALYSIS
    assert out[-1].data == {"score_category": "Good"}
    assert out[-1].progress == 100


@pytest.mark.asyncio
async def test_stream_keeps_document_with_backticks_in_strings(drain):
    doc = '{"main_roast": "Wrap code in ```fences``` elsewhere", "ats_score": 40}'
    events = [_event("response.output_text.delta", delta=doc), _event("response.completed")]
    adapter = OpenAIAdapter(CONFIG, client=_client(responses=FakeEndpoint(events=events)))

    out = await drain(adapter.generate_stream(_input(files=[PDF])))

    assert out[-1].type == ChunkType.COMPLETE_ANALYSIS
    assert out[-1].data == {"main_roast": "Wrap code in ```fences``` elsewhere", "ats_score": 40}


@pytest.mark.asyncio
async def test_unparsable_final_buffer_is_an_error_chunk(drain):
    events = [_event("response.output_text.delta", delta="I cannot help with that."), _event("response.completed")]
    adapter = OpenAIAdapter(CONFIG, client=_client(responses=FakeEndpoint(events=events)))

    out = await drain(adapter.generate_stream(_input(files=[PDF])))

    assert len(out) == 1
    assert out[0].type == ChunkType.ERROR
    assert "Could not parse" in out[0].error


@pytest.mark.asyncio
async def test_stream_request_failure_yields_single_error_chunk(drain):
    adapter = OpenAIAdapter(CONFIG, client=_client(completions=FakeEndpoint(error=RuntimeError("auth failed"))))

    out = await drain(adapter.generate_stream(_input()))

    assert len(out) == 1
    assert out[0].type == ChunkType.ERROR
    assert "auth failed" in out[0].error
