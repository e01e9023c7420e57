import logging

from newsletter_builder.pipeline.templating import (
    find_tokens,
    has_token,
    load_template,
    substitute,
    warn_missing_tokens,
)


def test_every_occurrence_is_replaced():
    tpl = "<table>{{%ROWS%}}</table><table>{{%ROWS%}}</table>"
    out = substitute(tpl, {"ROWS": "<tr>x</tr>"})
    assert out == "<table><tr>x</tr></table><table><tr>x</tr></table>"


def test_tokens_allow_inner_spaces():
    assert substitute("[{{% NAME %}}]", {"NAME": "v"}) == "[v]"


def test_inserted_content_is_not_rescanned():
    out = substitute("{{%A%}}|{{%B%}}", {"A": "{{%B%}}", "B": "b"})
    assert out == "{{%B%}}|b"


def test_result_is_independent_of_mapping_order():
    tpl = "{{%X%}}-{{%Y%}}"
    assert substitute(tpl, {"X": "{{%Y%}}", "Y": "2"}) == substitute(tpl, {"Y": "2", "X": "{{%Y%}}"})


def test_missing_values_become_empty():
    assert substitute("a{{%MISSING%}}b", {}) == "ab"
    assert substitute("a{{%NONE%}}b", {"NONE": None}) == "ab"


def test_token_names_are_case_sensitive():
    assert not has_token("{{%rows%}}", "ROWS")
    assert has_token("{{%ROWS%}}", "ROWS")


def test_find_tokens_distinct_in_order():
    assert find_tokens("{{%B%}} {{%A%}} {{%B%}}") == ["B", "A"]


def test_warn_missing_tokens(caplog):
    with caplog.at_level(logging.WARNING):
        missing = warn_missing_tokens("{{%A%}}", ["A", "B"], "layout.mjml")
    assert missing == ["B"]
    assert "Placeholder {{%B%}} not found in layout.mjml" in caplog.text


def test_load_template_reads_utf8(tmp_path):
    path = tmp_path / "layout.mjml"
    path.write_text("café {{%X%}}", encoding="utf-8")
    assert load_template(path) == "café {{%X%}}"
