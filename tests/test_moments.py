"""
Tests for moment storage (leolink/browser/moments.py)
"""
import base64
from datetime import datetime

from leolink.browser.moments import moment_slug, save_moment, decode_data_url

PNG = b"\x89PNG\r\n\x1a\nfake"
DATA_URL = "data:image/png;base64," + base64.b64encode(PNG).decode()
NOW = datetime(2026, 3, 14, 9, 26, 53)


class TestSlug:

    def test_screenshot(self):
        assert moment_slug({"action": "screenshot"}) == "screenshot"

    def test_moment_title(self):
        msg = {"action": "moment", "data": {"page": {"title": "Jobs: Senior Dev (Remote)!"}}}
        assert moment_slug(msg) == "jobs_senior_dev_remote"

    def test_moment_without_title(self):
        assert moment_slug({"action": "moment", "data": {"page": {}}}) == "snapshot"


class TestSave:

    def test_screenshot_layout(self, tmp_path):
        target = save_moment({"action": "screenshot", "data": {"screenshot": DATA_URL}}, tmp_path, now=NOW)
        assert target == tmp_path / "screenshot" / "20260314_092653"
        assert (target / "screenshot.png").read_bytes() == PNG
        assert not (target / "metadata.json").exists()

    def test_moment_metadata(self, tmp_path):
        msg = {"action": "moment", "data": {"screenshot": DATA_URL, "page": {"title": "Docs", "url": "https://d"}}}
        target = save_moment(msg, tmp_path, now=NOW)
        assert target == tmp_path / "docs" / "20260314_092653"
        assert '"url": "https://d"' in (target / "metadata.json").read_text()

    def test_bare_base64(self):
        assert decode_data_url(base64.b64encode(PNG).decode()) == PNG

    def test_no_image(self, tmp_path):
        assert save_moment({"action": "screenshot", "data": "nope"}, tmp_path) is None

    def test_bad_base64(self, tmp_path):
        assert save_moment({"action": "screenshot", "data": {"screenshot": "data:image/png;base64,abc"}}, tmp_path) is None
        assert list(tmp_path.iterdir()) == []
