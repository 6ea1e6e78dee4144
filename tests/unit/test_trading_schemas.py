"""Unit tests for trading request schemas and the trade-history cursor."""

import base64
import json
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from src.tr_trading.application.schemas import (
    CloseTradeRequest,
    OpenTradeRequest,
    cursor_decode,
    cursor_encode,
)


class TestCursor:
    def test_decode_recovers_position(self) -> None:
        trade_id = str(uuid.uuid4())
        closed_at = datetime(2026, 3, 10, 12, 30, 15, tzinfo=UTC)
        cursor = cursor_encode(MagicMock(id=trade_id, closed_at=closed_at))

        assert cursor_decode(cursor) == (closed_at, trade_id)

    @pytest.mark.parametrize("cursor", [None, "", "not-base64!!", "e30="])
    def test_missing_or_malformed_is_first_page(self, cursor: str | None) -> None:
        assert cursor_decode(cursor) == (None, None)

    def test_non_uuid_id_rejected(self) -> None:
        raw = json.dumps({"ts": "2026-03-10T12:00:00+00:00", "id": "1; DROP"}).encode()
        assert cursor_decode(base64.urlsafe_b64encode(raw).decode()) == (None, None)


class TestRequests:
    def test_open_request_from_camel_case(self) -> None:
        req = OpenTradeRequest.model_validate(
            {"symbol": "ETHUSDT", "side": "short", "leverage": 5, "margin": "25.5"}
        )
        assert req.margin == Decimal("25.5")

    def test_close_request_needs_uuid(self) -> None:
        with pytest.raises(ValidationError):
            CloseTradeRequest.model_validate({"positionId": "abc"})
        pid = uuid.uuid4()
        assert CloseTradeRequest.model_validate({"positionId": str(pid)}).position_id == pid
