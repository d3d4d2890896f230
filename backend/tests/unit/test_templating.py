"""
Unit tests for {{variable}} templating.
"""
from chatflow.flow.templating import render, render_payload, parse_custom_payload


class TestRender:
    """Tests for text rendering."""

    def test_replaces_known_variables(self):
        assert render("Olá, {{nome}}!", {"nome": "Ana"}) == "Olá, Ana!"

    def test_whitespace_inside_braces(self):
        assert render("{{ nome }}", {"nome": "Ana"}) == "Ana"

    def test_unknown_placeholder_is_kept(self):
        assert render("Pedido {{pedido}}", {}) == "Pedido {{pedido}}"

    def test_non_string_values(self):
        text = render("{{idade}} {{vip}} {{dados}}", {"idade": 30, "vip": True, "dados": {"a": 1}})
        assert text == '30 true {"a": 1}'

    def test_empty_template(self):
        assert render(None, {"a": 1}) == ""


class TestPayloads:
    """Tests for webhook payload templates."""

    def test_whole_placeholder_keeps_json_type(self):
        payload = render_payload({"idade": "{{idade}}", "texto": "tem {{idade}} anos"}, {"idade": 30})
        assert payload == {"idade": 30, "texto": "tem 30 anos"}

    def test_nested_structures(self):
        payload = render_payload({"lead": {"tags": ["{{origem}}", "fixo"]}}, {"origem": "whatsapp"})
        assert payload == {"lead": {"tags": ["whatsapp", "fixo"]}}

    def test_parse_json_string(self):
        payload = parse_custom_payload('{"nome": "{{nome}}", "ok": true}', {"nome": "Ana"})
        assert payload == {"nome": "Ana", "ok": True}

    def test_invalid_json_is_ignored(self):
        assert parse_custom_payload("{nome: }", {}) is None

    def test_empty_payload(self):
        assert parse_custom_payload("", {}) is None
        assert parse_custom_payload(None, {}) is None

    def test_dict_payload(self):
        assert parse_custom_payload({"id": "{{id}}"}, {"id": "7"}) == {"id": "7"}
