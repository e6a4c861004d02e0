"""
Tests for payload building, upload and the backup-on-failure path.

All HTTP calls are mocked; no network access.

To run: pytest tests/test_uploader.py -v
"""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from mtg_price_history.config import USER_AGENT
from mtg_price_history.errors import UploadError
from mtg_price_history.services.extractor import CardPrices
from mtg_price_history.services.progress import FileProgressSink, ProgressState
from mtg_price_history.services.uploader import build_payload, upload_payload, write_backup

URL = "http://api.test/api/price-history"
DATES = ["2025-01-15", "2024-12-15", "2024-11-15", "2024-10-15", "2024-09-15", "2024-08-15"]


def _response(status_code=200, text="ok"):
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    return resp


@pytest.fixture
def payload():
    cards = [
        CardPrices(id="uuid-1", prices={"2025-01-15": 12.35, "2024-12-15": 11.0}),
        CardPrices(id="uuid-2", prices={"2024-08-15": 0.25}),
    ]
    return build_payload(DATES, cards, processed=7)


@pytest.fixture
def progress_sink(tmp_path):
    sink = FileProgressSink(tmp_path / "progress.json")
    sink.report(ProgressState(
        total_estimate=7, processed=7, percent=100, elapsed_seconds=1.0,
        eta_seconds=0.0, rate=7.0, in_progress=True, phase="uploading",
    ))
    return sink


# =============================================================================
# Payload
# =============================================================================


class TestBuildPayload:
    def test_shape(self, payload):
        assert payload["dateRange"] == DATES
        assert payload["cards"] == [
            {"id": "uuid-1", "prices": {"2025-01-15": 12.35, "2024-12-15": 11.0}},
            {"id": "uuid-2", "prices": {"2024-08-15": 0.25}},
        ]
        meta = payload["metadata"]
        assert meta["monthsCollected"] == 6
        assert meta["dataStructure"] == "monthly_prices"
        assert meta["recordsProcessed"] == 7
        assert meta["cardsWithPrices"] == 2
        assert meta["generatedAt"].endswith("Z")

    def test_empty(self):
        payload = build_payload(DATES, [])
        assert payload["cards"] == []
        assert payload["metadata"]["cardsWithPrices"] == 0

    def test_is_json_serializable(self, payload):
        assert json.loads(json.dumps(payload)) == payload


class TestWriteBackup:
    def test_writes_pretty_json(self, tmp_path, payload):
        path = write_backup(payload, tmp_path / "backups")
        assert path.parent == tmp_path / "backups"
        assert path.name.startswith("price-history-backup-")
        assert path.suffix == ".json"
        text = path.read_text()
        assert text.startswith('{\n  "dateRange"')
        assert json.loads(text) == payload


# =============================================================================
# Upload
# =============================================================================


class TestUploadPayload:
    @patch("mtg_price_history.services.uploader.requests.post")
    def test_success(self, mock_post, tmp_path, payload, progress_sink):
        mock_post.return_value = _response(200)

        elapsed = upload_payload(URL, payload, tmp_path / "backups", sink=progress_sink, timeout=5)

        assert elapsed >= 0
        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args == (URL,)
        body = kwargs["data"]
        assert json.loads(body) == payload
        assert kwargs["headers"] == {
            "Content-Type": "application/json",
            "Content-Length": str(len(body)),
            "User-Agent": USER_AGENT,
        }
        assert kwargs["timeout"] == 5

        assert not progress_sink.path.exists()
        assert not (tmp_path / "backups").exists()

    @patch("mtg_price_history.services.uploader.requests.post")
    def test_any_2xx_is_success(self, mock_post, tmp_path, payload):
        mock_post.return_value = _response(201)
        upload_payload(URL, payload, tmp_path / "backups")
        assert not (tmp_path / "backups").exists()

    @patch("mtg_price_history.services.uploader.requests.post")
    def test_content_length_counts_bytes(self, mock_post, tmp_path):
        mock_post.return_value = _response(200)
        payload = build_payload(DATES, [CardPrices(id="carte-é", prices={"2025-01-15": 1.0})])

        upload_payload(URL, payload, tmp_path)

        kwargs = mock_post.call_args.kwargs
        assert kwargs["headers"]["Content-Length"] == str(len(kwargs["data"]))
        assert isinstance(kwargs["data"], bytes)

    @patch("mtg_price_history.services.uploader.requests.post")
    def test_server_error_writes_backup(self, mock_post, tmp_path, payload, progress_sink):
        mock_post.return_value = _response(500, "Internal Server Error")
        backup_dir = tmp_path / "backups"

        with pytest.raises(UploadError) as exc_info:
            upload_payload(URL, payload, backup_dir, sink=progress_sink)

        err = exc_info.value
        assert err.status_code == 500
        assert "Internal Server Error" in str(err)

        backups = list(backup_dir.glob("price-history-backup-*.json"))
        assert len(backups) == 1
        assert err.backup_path == backups[0]
        saved = json.loads(backups[0].read_text())
        assert saved["cards"] == payload["cards"]
        assert saved["dateRange"] == payload["dateRange"]

        # Progress file stays so a poller can see the run didn't finish cleanly
        assert progress_sink.path.exists()

    @patch("mtg_price_history.services.uploader.requests.post")
    def test_client_error_writes_backup(self, mock_post, tmp_path, payload):
        mock_post.return_value = _response(413, "Payload Too Large")
        with pytest.raises(UploadError) as exc_info:
            upload_payload(URL, payload, tmp_path / "backups")
        assert exc_info.value.status_code == 413
        assert exc_info.value.backup_path is not None

    @pytest.mark.parametrize("exc", [
        requests.exceptions.ConnectionError("refused"),
        requests.exceptions.Timeout("timed out"),
    ])
    def test_network_error_writes_backup(self, tmp_path, payload, exc):
        backup_dir = tmp_path / "backups"
        with patch("mtg_price_history.services.uploader.requests.post", side_effect=exc):
            with pytest.raises(UploadError) as exc_info:
                upload_payload(URL, payload, backup_dir)

        err = exc_info.value
        assert err.status_code is None
        assert err.url == URL
        assert len(list(backup_dir.glob("*.json"))) == 1

    @patch("mtg_price_history.services.uploader.requests.post")
    def test_backup_failure_does_not_mask_upload_error(self, mock_post, tmp_path, payload, caplog):
        mock_post.return_value = _response(503, "Service Unavailable")
        blocker = tmp_path / "backups"
        blocker.write_text("not a dir")

        with pytest.raises(UploadError) as exc_info:
            upload_payload(URL, payload, blocker)

        assert exc_info.value.status_code == 503
        assert exc_info.value.backup_path is None
        assert "Failed to create backup" in caplog.text

    @patch("mtg_price_history.services.uploader.requests.post")
    def test_no_retry(self, mock_post, tmp_path, payload):
        mock_post.return_value = _response(502, "Bad Gateway")
        with pytest.raises(UploadError):
            upload_payload(URL, payload, tmp_path)
        assert mock_post.call_count == 1
