"""Shared fixtures for loader tests."""

import gzip
import json
import logging

import pytest


def make_blob(tcg_normal=None, tcg_foil=None, ck_normal=None, ck_foil=None):
    """Build an MTGJSON price blob; each argument is a {date: price} dict."""
    paper = {}
    for vendor, normal, foil in (
        ("tcgplayer", tcg_normal, tcg_foil),
        ("cardkingdom", ck_normal, ck_foil),
    ):
        retail = {}
        if normal is not None:
            retail["normal"] = normal
        if foil is not None:
            retail["foil"] = foil
        if retail:
            paper[vendor] = {"retail": retail}
    return {"paper": paper}


def write_allprices(path, data, compress=False):
    """Write an AllPrices.json-shaped document to path."""
    doc = {"meta": {"date": "2025-01-15", "version": "5.2.2"}, "data": data}
    text = json.dumps(doc)
    if compress:
        with gzip.open(path, "wt", encoding="utf-8") as f:
            f.write(text)
    else:
        path.write_text(text)
    return path


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point every default path at a temp dir and clear env overrides."""
    home = tmp_path / "mtgph-home"
    monkeypatch.setenv("MTGPH_HOME", str(home))
    for var in (
        "MTGPH_SOURCE_FILE",
        "MTGPH_SOURCE_URL",
        "MTGPH_UPLOAD_URL",
        "MTGPH_PROGRESS_FILE",
        "MTGPH_LOCK_FILE",
        "MTGPH_BACKUP_DIR",
        "MTGPH_DEBUG",
        "API_BASE_URL",
    ):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture(autouse=True)
def restore_root_logging():
    """CLI entry points reconfigure the root logger; undo that per test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
