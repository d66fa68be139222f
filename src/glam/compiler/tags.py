"""Names of literal markup tags.

A capitalised tag whose lower-cased name appears here is never treated as a
pending component reference, and components may not be registered under
these names.
"""

HTML_TAGS = frozenset(
    {
        "a", "abbr", "address", "area", "article", "aside", "audio",
        "b", "base", "bdi", "bdo", "blockquote", "body", "br", "button",
        "canvas", "caption", "cite", "code", "col", "colgroup",
        "data", "datalist", "dd", "del", "details", "dfn", "dialog", "div", "dl", "dt",
        "em", "embed",
        "fieldset", "figcaption", "figure", "footer", "form",
        "h1", "h2", "h3", "h4", "h5", "h6", "head", "header", "hgroup", "hr", "html",
        "i", "iframe", "img", "input", "ins",
        "kbd",
        "label", "legend", "li", "link",
        "main", "map", "mark", "menu", "meta", "meter",
        "nav", "noscript",
        "object", "ol", "optgroup", "option", "output",
        "p", "param", "picture", "pre", "progress",
        "q",
        "rp", "rt", "ruby",
        "s", "samp", "script", "search", "section", "select", "slot", "small",
        "source", "span", "strong", "style", "sub", "summary", "sup",
        "table", "tbody", "td", "template", "textarea", "tfoot", "th", "thead",
        "time", "title", "tr", "track",
        "u", "ul",
        "var", "video",
        "wbr",
        # svg and mathml roots
        "svg", "math",
    }
)

# Elements whose body is text; tags inside them are not parsed.
RAW_TEXT_ELEMENTS = frozenset({"script", "style"})


def is_html_tag(name: str) -> bool:
    return name.lower() in HTML_TAGS
