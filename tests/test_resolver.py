"""
Tests for selector/label resolution (leolink/page/resolver.py)
"""
from leolink.page.document import PageDocument
from leolink.page.resolver import resolve_element


class TestResolutionOrder:
    """First matching strategy wins"""

    def test_css_selector(self, form_html):
        doc = PageDocument(form_html)
        assert resolve_element(doc, "#login")["id"] == "login"

    def test_css_match_beats_text_match(self):
        doc = PageDocument("""<body>
            <a href="#">button.primary</a>
            <button class="primary">Send</button>
        </body>""")
        el = resolve_element(doc, "button.primary")
        assert el.name == "button"

    def test_exact_text_beats_substring(self):
        doc = PageDocument("""<body>
            <a href="/a">Log in with Google</a>
            <button>Log In</button>
        </body>""")
        assert resolve_element(doc, "log in").name == "button"

    def test_exact_match_on_submit_value(self, form_html):
        doc = PageDocument(form_html)
        el = resolve_element(doc, "GO")
        assert el.name == "input"
        assert el["type"] == "submit"

    def test_substring_match(self, form_html):
        doc = PageDocument(form_html)
        assert resolve_element(doc, "Pricing")["href"] == "/pricing"

    def test_leaf_fallback(self, form_html):
        doc = PageDocument(form_html)
        assert resolve_element(doc, "contact").name == "span"

    def test_leaf_fallback_requires_exact_text(self, form_html):
        doc = PageDocument(form_html)
        assert resolve_element(doc, "conta") is None


class TestEdgeCases:

    def test_invalid_selector_falls_through(self):
        doc = PageDocument("<body><button>Sign in!</button></body>")
        assert resolve_element(doc, "Sign in!").name == "button"

    def test_digit_label(self):
        doc = PageDocument("<body><a href='?p=6'>6</a><a href='?p=7'>7</a></body>")
        assert resolve_element(doc, "7")["href"] == "?p=7"

    def test_role_button_candidate(self):
        doc = PageDocument("<body><div role='button'>Accept all</div></body>")
        assert resolve_element(doc, "accept all").name == "div"

    def test_missing_id_is_not_found(self, form_html):
        assert resolve_element(PageDocument(form_html), "#missing") is None

    def test_empty_target(self, form_html):
        doc = PageDocument(form_html)
        assert resolve_element(doc, "") is None
        assert resolve_element(doc, None) is None
