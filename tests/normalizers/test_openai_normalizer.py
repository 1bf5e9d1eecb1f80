from __future__ import annotations

from types import SimpleNamespace

from chatstream.normalizers.openai import OpenAINormalizer

from tests.fixtures import provider_streams


def _feed(normalizer, context, *chunks):
    events = []
    for chunk in chunks:
        events.extend(normalizer.normalize(chunk, context))
    return events


def test_content_deltas_and_stop(context) -> None:
    normalizer = OpenAINormalizer()

    events = _feed(
        normalizer,
        context,
        {"choices": [{"delta": {"content": "Hel"}}]},
        {"choices": [{"delta": {"content": "lo"}}]},
        {"choices": [{"delta": {"content": "!"}, "finish_reason": "stop"}]},
    )

    assert [(event.type.value, event.payload.text) for event in events] == [
        ("assistant_chunk", "Hel"),
        ("assistant_chunk", "lo"),
        ("assistant_chunk", "!"),
        ("assistant_done", "Hello!"),
    ]
    assert all(event.response_id == "response-1" for event in events)


def test_content_parts_are_concatenated(context) -> None:
    normalizer = OpenAINormalizer()

    [event] = normalizer.normalize(
        {
            "choices": [
                {
                    "delta": {
                        "content": [
                            {"type": "text", "text": "a"},
                            {"type": "image_url", "image_url": {"url": "x"}},
                            {"type": "text", "text": "b"},
                        ]
                    }
                }
            ]
        },
        context,
    )

    assert event.payload.text == "ab"


def test_stop_without_text_emits_empty_done(context) -> None:
    [event] = OpenAINormalizer().normalize({"choices": [{"delta": {}, "finish_reason": "stop"}]}, context)

    assert event.type.value == "assistant_done"
    assert event.payload.text == ""


def test_tool_call_arguments_accumulate_and_emit_in_index_order(context) -> None:
    normalizer = OpenAINormalizer()

    events = _feed(normalizer, context, *provider_streams.openai_tool_call_chunks())

    assert [event.type.value for event in events] == ["tool_call", "tool_call"]
    first, second = events
    assert (first.payload.tool_call_id, first.payload.tool_name, first.payload.args) == ("call_a", "first", {"a": 1})
    assert (second.payload.tool_call_id, second.payload.tool_name, second.payload.args) == ("call_b", "second", {"b": 2})


def test_tool_call_without_id_gets_generated_id(context) -> None:
    normalizer = OpenAINormalizer()

    events = _feed(
        normalizer,
        context,
        {"choices": [{"delta": {"tool_calls": [{"index": 0, "function": {"name": "lookup", "arguments": "{}"}}]}}]},
        {"choices": [{"finish_reason": "tool_calls"}]},
    )

    [event] = events
    assert event.payload.tool_call_id == "event-1"
    assert event.payload.args == {}


def test_malformed_and_non_object_arguments_become_empty(context) -> None:
    normalizer = OpenAINormalizer()

    events = _feed(
        normalizer,
        context,
        {
            "choices": [
                {
                    "delta": {
                        "tool_calls": [
                            {"index": 0, "id": "a", "function": {"name": "one", "arguments": "{\"broken"}},
                            {"index": 1, "id": "b", "function": {"name": "two", "arguments": "[1]"}},
                            {"index": 2, "id": "c", "function": {"name": "three", "arguments": "   "}},
                        ]
                    },
                    "finish_reason": "tool_calls",
                }
            ]
        },
    )

    assert [event.payload.args for event in events] == [{}, {}, {}]


def test_undecodable_arguments_become_empty(context) -> None:
    normalizer = OpenAINormalizer()
    oversized = "{\"n\": " + "1" * 5000 + "}"

    events = _feed(
        normalizer,
        context,
        {
            "choices": [
                {
                    "delta": {
                        "tool_calls": [
                            {"index": 0, "id": "a", "function": {"name": "one", "arguments": oversized}},
                            {"index": 1, "id": "b", "function": {"name": "two", "arguments": "[" * 100000}},
                            {"index": 2, "id": "c", "function": {"name": "three", "arguments": "{\"x\": Infinity}"}},
                        ]
                    },
                    "finish_reason": "tool_calls",
                }
            ]
        },
    )

    assert [(event.payload.tool_name, event.payload.args) for event in events] == [
        ("one", {}),
        ("two", {}),
        ("three", {}),
    ]


def test_unnamed_tool_calls_are_skipped(context) -> None:
    normalizer = OpenAINormalizer()

    events = _feed(
        normalizer,
        context,
        {"choices": [{"delta": {"tool_calls": [{"index": 0, "id": "a", "function": {"arguments": "{}"}}]}}]},
        {"choices": [{"delta": {}, "finish_reason": "tool_calls"}]},
    )

    assert events == []


def test_tool_calls_are_discarded_after_finish(context) -> None:
    normalizer = OpenAINormalizer()
    chunk = {"choices": [{"delta": {"tool_calls": [{"index": 0, "id": "a", "function": {"name": "t", "arguments": "{}"}}]}}]}
    finish = {"choices": [{"delta": {}, "finish_reason": "tool_calls"}]}

    first = _feed(normalizer, context, chunk, finish)
    second = _feed(normalizer, context, finish)

    assert len(first) == 1
    assert second == []


def test_choices_accumulate_independently(context) -> None:
    normalizer = OpenAINormalizer()

    events = _feed(
        normalizer,
        context,
        {"choices": [{"delta": {"content": "A1"}}, {"delta": {"content": "B1"}}]},
        {"choices": [{"delta": {"content": "A2"}, "finish_reason": "stop"}, {"delta": {"content": "B2"}}]},
        {"choices": [{"delta": {}}, {"delta": {}, "finish_reason": "stop"}]},
    )

    done = [event.payload.text for event in events if event.type.value == "assistant_done"]
    assert done == ["A1A2", "B1B2"]


def test_text_buffer_resets_after_stop(context) -> None:
    normalizer = OpenAINormalizer()

    _feed(normalizer, context, {"choices": [{"delta": {"content": "old"}, "finish_reason": "stop"}]})
    events = _feed(normalizer, context, {"choices": [{"delta": {"content": "new"}, "finish_reason": "stop"}]})

    assert events[-1].payload.text == "new"


def test_other_finish_reasons_keep_state(context) -> None:
    normalizer = OpenAINormalizer()

    events = _feed(
        normalizer,
        context,
        {"choices": [{"delta": {"content": "cut"}, "finish_reason": "length"}]},
        {"choices": [{"delta": {}, "finish_reason": "stop"}]},
    )

    assert [(event.type.value, event.payload.text) for event in events] == [
        ("assistant_chunk", "cut"),
        ("assistant_done", "cut"),
    ]


def test_chunks_without_choices_are_ignored(context) -> None:
    normalizer = OpenAINormalizer()

    assert normalizer.normalize({"id": "chunk"}, context) == []
    assert normalizer.normalize({"choices": "nope"}, context) == []
    assert normalizer.normalize({"choices": [None, {}]}, context) == []
    assert normalizer.normalize("not a chunk", context) == []


def test_sdk_objects_with_model_dump_are_accepted(context) -> None:
    chunk = SimpleNamespace(model_dump=lambda: {"choices": [{"delta": {"content": "sdk"}}]})

    [event] = OpenAINormalizer().normalize(chunk, context)

    assert event.payload.text == "sdk"
