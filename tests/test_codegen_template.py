import unittest
from typing import AbstractSet

from glam.compiler.codegen.template import TemplateCodegen, string_literal
from glam.compiler.parser import parse
from glam.compiler.scanner import Delimiters


def lower(source: str, components: AbstractSet[str]) -> str:
    return TemplateCodegen().generate(parse(source, components).nodes)


class TestTemplateCodegen(unittest.TestCase):
    def test_template_without_components_is_unchanged(self) -> None:
        source = '<ul>{% for x in xs %}<li class="{{ x.kind }}">{{ x }}</li>{% endfor %}</ul>'
        self.assertEqual(lower(source, {"Card"}), source)

    def test_childless_component(self) -> None:
        self.assertEqual(
            lower('<Yell Name="Fox"/>', {"Yell"}),
            '{{ glam__render("Yell", "", {"Name": "Fox"}, none) }}',
        )

    def test_empty_pair_matches_self_closing(self) -> None:
        self.assertEqual(
            lower('<Yell Name="Fox"></Yell>', {"Yell"}),
            lower('<Yell Name="Fox"/>', {"Yell"}),
        )

    def test_attribute_expressions(self) -> None:
        codegen = TemplateCodegen()
        self.assertEqual(codegen.attribute_expression("plain"), '"plain"')
        self.assertEqual(codegen.attribute_expression("{{ age }}"), "(age)")
        self.assertEqual(codegen.attribute_expression("{{- age -}}"), "(age)")
        self.assertEqual(codegen.attribute_expression("btn {{ kind }}!"), '"btn " ~ (kind) ~ "!"')
        self.assertEqual(codegen.attribute_expression(""), '""')

    def test_string_literal_escaping(self) -> None:
        self.assertEqual(string_literal('say "hi" \\o/'), '"say \\"hi\\" \\\\o/"')

    def test_children_are_hoisted_into_a_macro(self) -> None:
        lowered = lower('<p><Wrapper title="{{ t }}">Hi {{ name }}</Wrapper></p>', {"Wrapper"})
        self.assertEqual(
            lowered,
            '{% macro glam__Wrapper__1(glam__ctx) %}Hi {{ glam__ctx.locals["name"] }}{% endmacro %}'
            '<p>{{ glam__render("Wrapper", "glam__Wrapper__1", {"title": (t)}, '
            'glam__scope(this, root, {"name": name})) }}</p>',
        )

    def test_nested_blocks_pass_the_context_through(self) -> None:
        self.assertEqual(
            lower("<Box><Box>{{ name }}</Box></Box>", {"Box"}),
            '{% macro glam__Box__2(glam__ctx) %}{{ glam__ctx.locals["name"] }}{% endmacro %}'
            '{% macro glam__Box__1(glam__ctx) %}'
            '{{ glam__render("Box", "glam__Box__2", {}, glam__ctx) }}{% endmacro %}'
            '{{ glam__render("Box", "glam__Box__1", {}, glam__scope(this, root, {"name": name})) }}',
        )

    def test_names_bound_inside_a_block_extend_the_context(self) -> None:
        lowered = lower(
            "<List>{% for item in items %}<Row>{{ item }}</Row>{% endfor %}</List>",
            {"List", "Row"},
        )
        self.assertIn(
            '{{ glam__render("Row", "glam__Row__2", {}, glam__ctx.extend({"item": item})) }}',
            lowered,
        )
        self.assertIn(
            '{% macro glam__Row__2(glam__ctx) %}{{ glam__ctx.locals["item"] }}{% endmacro %}',
            lowered,
        )
        self.assertIn('{% for item in glam__ctx.locals["items"] %}', lowered)
        self.assertIn('glam__scope(this, root, {"items": items})', lowered)

    def test_block_ids_are_unique(self) -> None:
        lowered = lower("<Box>a</Box><Box>b</Box>", {"Box"})
        self.assertIn("glam__Box__1", lowered)
        self.assertIn("glam__Box__2", lowered)

    def test_generate_is_repeatable(self) -> None:
        nodes = parse("<Box>a</Box>", {"Box"}).nodes
        codegen = TemplateCodegen()
        self.assertEqual(codegen.generate(nodes), codegen.generate(nodes))

    def test_custom_delimiters(self) -> None:
        delimiters = Delimiters(expression_start="[[", expression_end="]]")
        nodes = parse('<Yell Name="[[ n ]]"/>', {"Yell"}, delimiters).nodes
        self.assertEqual(
            TemplateCodegen(delimiters).generate(nodes),
            '[[ glam__render("Yell", "", {"Name": (n)}, none) ]]',
        )


if __name__ == "__main__":
    unittest.main()
