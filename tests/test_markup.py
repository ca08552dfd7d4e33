from i18n_extract.markup import (
    MarkupOrigin,
    decode_entities,
    extract_from_markup,
    mask_style_and_script,
    split_static_segments,
)

ATTRS = {"title", "alt", "placeholder", "aria-label"}


def scan(markup, **kwargs):
    return extract_from_markup(markup, "/abs/page.html", "page.html", 2, ATTRS, **kwargs)


def test_text_node_and_attribute_positions():
    markup = '<div>\n  <p>Welcome back</p>\n  <img src="a.png" alt="Company logo">\n</div>\n'
    found = scan(markup)
    by_text = {f.text: f for f in found}

    text_node = by_text["Welcome back"]
    assert text_node.kind == "text-node"
    assert (text_node.line, text_node.column) == (2, 5)

    attr = by_text["Company logo"]
    assert attr.kind == "attribute-value"
    assert attr.raw_text == "Company logo"
    lines = markup.split("\n")
    assert (attr.line, attr.column) == (3, lines[2].index("Company logo"))
    assert "a.png" not in by_text


def test_style_and_script_bodies_are_masked():
    markup = "<style>.a > b { color: red }</style><script>var x = '<b>Hidden text</b>';</script><p>Shown text</p>"
    masked = mask_style_and_script(markup)
    assert len(masked) == len(markup)
    assert [f.text for f in scan(markup)] == ["Shown text"]


def test_entities_are_decoded_but_raw_text_kept():
    found = scan("<p>Terms &amp; Conditions</p>")
    assert found[0].text == "Terms & Conditions"
    assert found[0].raw_text == "Terms &amp; Conditions"
    assert decode_entities("a&nbsp;b &lt;c&gt;") == "a b <c>"


def test_interpolations_split_text_nodes():
    markup = "<p>Hello {{ user.name }} and welcome</p>"
    assert split_static_segments("Hello {{ x }} there") == [("Hello ", 0), (" there", 13)]
    texts = [f.text for f in scan(markup)]
    assert texts == ["Hello", "and welcome"]


def test_interpolation_string_literals():
    markup = "<p>{{ 'Nothing to show' }}</p><p>{{ createdAt | date:'short' }}</p><p>{{ 'KEY' | translate }}</p>"
    found = [f for f in scan(markup) if f.kind == "interpolation-expression"]
    assert [f.text for f in found] == ["Nothing to show"]
    assert found[0].raw_text == "'Nothing to show'"
    assert markup[found[0].column : found[0].column + len(found[0].raw_text)] == "'Nothing to show'"


def test_control_flow_blocks_and_class_lists_rejected():
    markup = "<div>@if (user) {</div><span>btn btn-primary</span><b>}</b>"
    assert scan(markup) == []


def test_inline_template_origin_shifts_coordinates():
    markup = '\n    <a routerLink="/sources">Source CVs</a>\n  '
    found = scan(markup, origin=MarkupOrigin(line=5, column=13))
    assert len(found) == 1
    assert found[0].text == "Source CVs"
    assert (found[0].line, found[0].column) == (6, markup.split("\n")[1].index("Source CVs"))

    single = scan("<b>Save changes</b>", origin=MarkupOrigin(line=3, column=13))
    assert (single[0].line, single[0].column) == (3, 16)
