import pytest

from clipcomposer.errors import ExtractionError
from clipcomposer.json_extract import extract_json, iter_top_level_objects, strip_code_fences


def test_fenced_json():
    assert extract_json('```json\n{"a":1}\n```') == {"a": 1}


def test_fence_without_language_tag():
    assert extract_json('```\n{"notes": []}\n```') == {"notes": []}


def test_first_top_level_object_wins():
    assert extract_json('noise {"a":1} trailing {"b":2} more noise') == {"a": 1}


def test_prose_around_single_object():
    text = 'Here is your clip:\n{"time_signature": "4/4", "notes": [{"tb": 0}]}\nEnjoy!'
    assert extract_json(text) == {"time_signature": "4/4", "notes": [{"tb": 0}]}


def test_truncated_tail_falls_back_to_complete_block():
    text = '{"a": {"b": 1}} {"c": [1, 2'
    assert extract_json(text) == {"a": {"b": 1}}


def test_skips_unparseable_block():
    assert extract_json('{not json} then {"ok": true}') == {"ok": True}


@pytest.mark.parametrize("text", ["", None, 42, "just words", "{broken", "} {"])
def test_garbage_raises(text):
    with pytest.raises(ExtractionError):
        extract_json(text)


def test_extraction_error_is_value_error():
    with pytest.raises(ValueError):
        extract_json("nope")


def test_strip_code_fences_case_insensitive():
    assert strip_code_fences("```JSON\n{}\n```") == "{}"


def test_iter_top_level_objects_ignores_leading_close_brace():
    assert list(iter_top_level_objects('} {"a": 1} x {"b": {"c": 2}}')) == ['{"a": 1}', '{"b": {"c": 2}}']


def test_deeply_nested_input_raises_extraction_error():
    with pytest.raises(ExtractionError):
        extract_json("[" * 100000)
