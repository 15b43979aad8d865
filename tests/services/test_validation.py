from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from stockhold.domain.errors import (
    ErrorKind,
    IncorrectDueDate,
    InvalidGetParams,
    InvalidQuantity,
    InvalidSKU,
    InvalidUUID,
)
from stockhold.domain.types import GetParams, ReservationRequest
from stockhold.services.validation import (
    validate_delete_request,
    validate_get_params,
    validate_reservation_request,
)

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
WH = uuid.UUID("6f1c2a4e-8d3b-4c5a-9e7f-0a1b2c3d4e5f")


def _req(**overrides) -> ReservationRequest:
    base = dict(
        id=uuid.uuid4(),
        warehouse_id=WH,
        product_id="SKU-0001",
        quantity=5,
        due_date=NOW + timedelta(days=30),
    )
    base.update(overrides)
    return ReservationRequest(**base)


def test_valid_request_passes():
    validate_reservation_request(_req(), now=NOW)


@pytest.mark.parametrize(
    "overrides, exc",
    [
        ({"id": None}, InvalidUUID),
        ({"id": uuid.UUID(int=0)}, InvalidUUID),
        ({"warehouse_id": None}, InvalidUUID),
        ({"warehouse_id": "not-a-uuid"}, InvalidUUID),
        ({"product_id": ""}, InvalidSKU),
        ({"product_id": None}, InvalidSKU),
        ({"product_id": "X" * 13}, InvalidSKU),
        ({"due_date": None}, IncorrectDueDate),
        ({"due_date": NOW}, IncorrectDueDate),
        ({"due_date": NOW - timedelta(seconds=1)}, IncorrectDueDate),
        ({"quantity": 0}, InvalidQuantity),
        ({"quantity": -3}, InvalidQuantity),
    ],
)
def test_invalid_request_rejected(overrides, exc):
    with pytest.raises(exc) as ei:
        validate_reservation_request(_req(**overrides), now=NOW)
    assert ei.value.kind is ErrorKind.VALIDATION


def test_sku_at_max_length_is_accepted():
    validate_reservation_request(_req(product_id="X" * 12), now=NOW)


def test_naive_due_date_is_treated_as_utc():
    naive = (NOW + timedelta(minutes=1)).replace(tzinfo=None)
    validate_reservation_request(_req(due_date=naive), now=NOW)


def test_delete_request_requires_non_nil_id():
    validate_delete_request(uuid.uuid4())
    with pytest.raises(InvalidUUID):
        validate_delete_request(None)
    with pytest.raises(InvalidUUID):
        validate_delete_request(uuid.UUID(int=0))


@pytest.mark.parametrize(
    "params",
    [
        GetParams(sorting="quantity desc"),
        GetParams(warehouse_filter=f"{WH} {WH}"),
        GetParams(product_filter="SKU 1"),
        GetParams(warehouse_filter="not-a-uuid"),
        GetParams(offset=-1),
        GetParams(limit=-1),
    ],
)
def test_get_params_rejected(params):
    with pytest.raises(InvalidGetParams):
        validate_get_params(params)


def test_get_params_product_filter_too_long_is_invalid_sku():
    with pytest.raises(InvalidSKU):
        validate_get_params(GetParams(product_filter="X" * 13))


def test_get_params_limit_upper_bound():
    validate_get_params(GetParams(limit=1000), max_limit=1000)
    with pytest.raises(InvalidGetParams):
        validate_get_params(GetParams(limit=1001), max_limit=1000)


def test_get_params_defaults_pass():
    validate_get_params(GetParams())
    validate_get_params(GetParams(sorting="quantity", warehouse_filter=str(WH), product_filter="SKU-0001"))
