"""
Tests for the page context model (leolink/page/document.py)
"""
from leolink.page.document import PageDocument, ElementLayout, REF_ATTR


def _first(doc, selector):
    return doc.select(selector)[0]


class TestStaticLayout:
    """Visibility derived from markup when no live layout exists"""

    def test_plain_element_is_rendered(self):
        doc = PageDocument("<body><a href='#'>Go</a></body>")
        assert doc.is_rendered(_first(doc, "a"))

    def test_hidden_variants(self):
        doc = PageDocument("""<body>
            <a id="a1" hidden>One</a>
            <div style="display: none"><a id="a2">Two</a></div>
            <a id="a3" style="visibility:hidden">Three</a>
            <input id="a4" type="hidden" value="x">
        </body>""")
        for selector in ("#a1", "#a2", "#a3", "#a4"):
            assert not doc.is_rendered(_first(doc, selector)), selector

    def test_visibility_inherits_from_nearest_ancestor(self):
        doc = PageDocument("""<body><div style="visibility: hidden">
            <a id="in">In</a><span style="visibility: visible"><a id="out">Out</a></span>
        </div></body>""")
        assert not doc.is_rendered(_first(doc, "#in"))
        assert doc.is_rendered(_first(doc, "#out"))

    def test_live_layout_wins(self):
        doc = PageDocument("<body><a id='x' data-leo-ref='7'>Go</a></body>",
                           layout={"7": ElementLayout(width=0, height=20)})
        assert not doc.is_rendered(_first(doc, "#x"))


class TestElementAccessors:

    def test_inner_text_skips_scripts_and_styles(self):
        doc = PageDocument("<body><div>Hello <script>x=1</script><style>p{}</style>world</div></body>")
        assert doc.inner_text(_first(doc, "div")) == "Hello world"

    def test_values(self):
        doc = PageDocument("""<body>
            <input id="i" value="abc"><input id="e">
            <textarea id="t">notes</textarea>
            <select id="s"><option value="1">One</option><option value="2" selected>Two</option></select>
            <a id="a">link</a>
        </body>""")
        assert doc.value(_first(doc, "#i")) == "abc"
        assert doc.value(_first(doc, "#e")) == ""
        assert doc.value(_first(doc, "#t")) == "notes"
        assert doc.value(_first(doc, "#s")) == "2"
        assert doc.value(_first(doc, "#a")) is None

    def test_element_types(self):
        doc = PageDocument("""<body><input id="i"><input id="c" type="Checkbox">
            <button id="b">x</button><select id="s"></select><a id="a">y</a></body>""")
        assert doc.element_type(_first(doc, "#i")) == "text"
        assert doc.element_type(_first(doc, "#c")) == "checkbox"
        assert doc.element_type(_first(doc, "#b")) == "submit"
        assert doc.element_type(_first(doc, "#s")) == "select-one"
        assert doc.element_type(_first(doc, "#a")) == ""

    def test_refs_are_assigned_and_found(self):
        doc = PageDocument("<body><p>a</p><p>b</p></body>")
        second = doc.select("p")[1]
        ref = doc.ref_of(second)
        assert ref
        assert doc.find_by_ref(ref) is second

    def test_existing_refs_are_kept(self):
        doc = PageDocument(f"<body><p {REF_ATTR}='42'>a</p></body>")
        assert doc.ref_of(_first(doc, "p")) == "42"


class TestSnapshots:

    def test_from_snapshot_uses_live_text_and_value(self):
        doc = PageDocument.from_snapshot({
            "html": "<html><head><title>Old</title></head><body><input data-leo-ref='1' value='a'></body></html>",
            "title": "Live Title",
            "url": "https://example.test/",
            "text": "rendered body",
            "layout": {"1": {"text": "", "value": "typed", "width": 100, "height": 20, "visibility": "visible"}},
        })
        el = doc.find_by_ref("1")
        assert doc.value(el) == "typed"
        assert doc.title == "Live Title"
        assert doc.url == "https://example.test/"
        assert doc.rendered_text() == "rendered body"
        assert doc.is_rendered(el)

    def test_clone_is_independent(self):
        doc = PageDocument("<html><head><title>T</title></head><body><p>keep me</p></body></html>")
        copy = doc.clone()
        copy.soup.body.decompose()
        copy.layout["x"] = ElementLayout()
        assert "keep me" in doc.html
        assert "x" not in doc.layout
        assert doc.title == "T"


class TestLiveSnapshot:
    """Documents built from the in-page snapshot"""

    def test_unreported_element_is_not_rendered(self):
        doc = PageDocument.from_snapshot({
            "html": "<body><a data-leo-ref='2'>Home</a><button data-leo-ref='3'>Late</button></body>",
            "layout": {"2": {"width": 40, "height": 12, "visibility": "visible", "text": "Home"}},
        })
        assert doc.live
        assert doc.is_rendered(_first(doc, "a"))
        assert not doc.is_rendered(_first(doc, "button"))

    def test_clone_keeps_live_flag(self):
        doc = PageDocument.from_snapshot({"html": "<body><p data-leo-ref='1'>x</p></body>", "layout": {}})
        assert doc.clone().live
        assert not PageDocument("<body></body>").live

    def test_template_content_is_not_queried(self):
        doc = PageDocument("<body><template><button>Ghost</button></template><button>Real</button></body>")
        assert [doc.inner_text(el) for el in doc.select("button")] == ["Real"]
        assert [el.name for el in doc.all_elements()] == ["template", "button"]
