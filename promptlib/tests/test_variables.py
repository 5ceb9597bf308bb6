"""Placeholder variable extraction and substitution."""
from promptlib.features.catalog.variables import extract_variables, fill_variables


def test_extracts_all_notations_in_first_seen_order():
    content = "Write to {{name}} about [topic] in ${tone}. Mention [topic] again."
    assert extract_variables(content) == ["name", "topic", "tone"]


def test_names_are_trimmed():
    assert extract_variables("Hello [ audience ] and {{ goal }}") == ["audience", "goal"]


def test_no_placeholders():
    assert extract_variables("Plain text") == []
    assert extract_variables("") == []


def test_fill_replaces_known_values_only():
    content = "Dear [name], your ${item} ships {{when}}."
    result = fill_variables(content, {"name": "Ana", "when": "tomorrow"})
    assert result == "Dear Ana, your ${item} ships tomorrow."


def test_fill_replaces_every_occurrence():
    assert fill_variables("[x] + [x]", {"x": "1"}) == "1 + 1"
