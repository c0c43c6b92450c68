"""
Moment storage - screenshots and page snapshots reported by the agent.

Layout:
    <moments_dir>/<slug>/<YYYYmmdd_HHMMSS>/screenshot.png
    <moments_dir>/<slug>/<YYYYmmdd_HHMMSS>/metadata.json   (moment only)
"""

import json
import base64
import binascii
import logging
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


def moment_slug(message: Dict[str, Any]) -> str:
    """Directory name for a result: page title for moments, 'screenshot' otherwise."""
    if message.get("action") != "moment":
        return "screenshot"
    page = (message.get("data") or {}).get("page") or {}
    title = page.get("title") or "snapshot"
    kept = "".join(c for c in title if c.isalnum() or c == " ")
    return kept.replace(" ", "_").lower()


def decode_data_url(data_url: str) -> bytes:
    """Bytes of a base64 data URL (a bare base64 string is accepted too)."""
    payload = data_url.split(",", 1)[1] if "," in data_url else data_url
    return base64.b64decode(payload)


def save_moment(message: Dict[str, Any], moments_dir: Path, now: Optional[datetime] = None) -> Optional[Path]:
    """
    Persist a screenshot/moment result.
    Returns the directory written, or None if the message carries no image.
    """
    data = message.get("data")
    if not isinstance(data, dict) or not isinstance(data.get("screenshot"), str):
        return None

    try:
        image = decode_data_url(data["screenshot"])
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Undecodable screenshot in {message.get('action')} result: {e}")
        return None

    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    target = Path(moments_dir) / moment_slug(message) / timestamp
    target.mkdir(parents=True, exist_ok=True)

    img_path = target / "screenshot.png"
    img_path.write_bytes(image)
    logger.info(f"Saved {message.get('action')} to {img_path}")

    page = data.get("page")
    if message.get("action") == "moment" and isinstance(page, dict):
        (target / "metadata.json").write_text(json.dumps(page, indent=2), encoding="utf-8")

    return target
