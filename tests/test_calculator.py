"""End-to-end bill calculation tests."""

import logging

import pytest

from thai_tariff.calculator import calculate_bill, calculate_plan, envelope
from thai_tariff.catalog import RateCatalog
from thai_tariff.config import Settings
from thai_tariff.errors import (
    EmptyBodyError,
    InvalidPlanNameError,
    InvalidTariffTypeError,
    InvalidVoltageLevelError,
    MissingFieldError,
    NegativeValueError,
    RateNotFoundError,
    ValidationError,
)


@pytest.fixture
def settings():
    return Settings()


def test_small_service_normal(settings):
    """MEA residential-style bill with three energy tiers."""
    result = calculate_bill(
        "mea",
        "type-2",
        {
            "tariffType": "normal",
            "voltageLevel": "<12kV",
            "ftRateSatang": 19.72,
            "usage": {"total_kwh": 500},
        },
        settings=settings,
    )
    assert result.energy_charge == pytest.approx(1984.88)
    assert result.ft_charge == pytest.approx(98.6)
    assert result.service_charge == 33.29
    assert result.base_tariff == pytest.approx(2018.17)
    assert result.vat == pytest.approx(148.1739)
    assert result.total == pytest.approx(2264.9439)

    assert result.to_dict(2) == {
        "energyCharge": 1984.88,
        "serviceCharge": 33.29,
        "baseTariff": 2018.17,
        "ftCharge": 98.6,
        "vat": 148.17,
        "totalBill": 2264.94,
    }


def test_medium_service_normal_high_voltage(settings):
    result = calculate_bill(
        "mea",
        "type-3",
        {
            "tariffType": "normal",
            "voltageLevel": ">=69kV",
            "ftRateSatang": 19.72,
            "peakKvar": 120,
            "highestDemandChargeLast12m": 20000,
            "usage": {"peak_kw": 100, "total_kwh": 40000},
        },
        settings=settings,
    )
    assert result.calculated_demand_charge == pytest.approx(17570)
    assert result.effective_demand_charge == pytest.approx(17570)
    assert result.energy_charge == pytest.approx(124388)
    assert result.pf_charge == pytest.approx(3252.06)
    assert result.ft_charge == pytest.approx(7888)
    assert result.sub_total == pytest.approx(153410.3)
    assert result.vat == pytest.approx(10738.721)
    assert result.total == pytest.approx(164149.021)


def test_large_service_tod(settings):
    result = calculate_bill(
        "mea",
        "type-4",
        {
            "tariffType": "tod",
            "voltageLevel": ">=69kV",
            "ftRateSatang": 19.72,
            "peakKvar": 100,
            "highestDemandChargeLast12m": 50000,
            "usage": {
                "on_peak_kw": 250,
                "partial_peak_kw": 200,
                "off_peak_kw": 100,
                "total_kwh": 100000,
            },
        },
        settings=settings,
    )
    assert result.calculated_demand_charge == pytest.approx(84828)
    assert result.effective_demand_charge == pytest.approx(84828)
    assert result.energy_charge == pytest.approx(310970)
    assert result.pf_charge == 0
    assert result.ft_charge == pytest.approx(19720)
    assert result.sub_total == pytest.approx(415830.24)


def test_specific_business_tou(settings):
    result = calculate_bill(
        "pea",
        "type-5",
        {
            "tariffType": "tou",
            "voltageLevel": "<22kV",
            "ftRateSatang": 39.72,
            "peakKvar": 100,
            "highestDemandChargeLast12m": 25000,
            "usage": {
                "on_peak_kw": 110,
                "on_peak_kwh": 22500,
                "off_peak_kw": 110,
                "off_peak_kwh": 22500,
            },
        },
        settings=settings,
    )
    assert result.calculated_demand_charge == pytest.approx(30430.4)
    assert result.effective_demand_charge == pytest.approx(30430.4)
    assert result.energy_charge == pytest.approx(142879.5)
    assert result.pf_charge == pytest.approx(1794.24)
    assert result.service_charge == 312.24
    assert result.ft_charge == pytest.approx(17874)
    assert result.sub_total == pytest.approx(193290.38)
    assert result.total == pytest.approx(193290.38 * 1.07)


def test_minimum_bill_floor(settings):
    result = calculate_bill(
        "mea",
        "type-3",
        {
            "tariffType": "tou",
            "voltageLevel": ">=69kV",
            "ftRateSatang": 0,
            "peakKvar": 0,
            "highestDemandChargeLast12m": 30000,
            "usage": {
                "on_peak_kw": 100,
                "on_peak_kwh": 1000,
                "off_peak_kw": 100,
                "off_peak_kwh": 1000,
            },
        },
        settings=settings,
    )
    assert result.calculated_demand_charge == pytest.approx(7414)
    assert result.effective_demand_charge == pytest.approx(21000)
    assert result.to_dict()["effectiveDemandCharge"] == pytest.approx(21000)


def test_invalid_tariff_is_logged(settings, caplog):
    caplog.set_level(logging.INFO, logger="thai_tariff")
    with pytest.raises(InvalidTariffTypeError):
        calculate_bill(
            "pea",
            "type-5",
            {
                "tariffType": "tod",
                "voltageLevel": "<22kV",
                "ftRateSatang": 39.72,
                "peakKvar": 0,
                "highestDemandChargeLast12m": 0,
                "usage": {},
            },
            settings=settings,
        )
    assert "Invalid tariff type for Type 5" in caplog.text


def test_empty_catalog_is_a_configuration_error(settings, caplog):
    with pytest.raises(RateNotFoundError, match="Rates not found for MEA type-2"):
        calculate_bill(
            "mea",
            "type-2",
            {
                "tariffType": "normal",
                "voltageLevel": "<12kV",
                "ftRateSatang": 0,
                "usage": {"total_kwh": 1},
            },
            catalog=RateCatalog(),
            settings=settings,
        )
    assert any(r.levelno == logging.ERROR for r in caplog.records)


def test_small_service_at_69kv_is_a_caller_error(settings, caplog):
    """No small-service rates exist at 69kV, so the request is rejected up front."""
    with pytest.raises(ValidationError) as exc:
        calculate_bill(
            "pea",
            "type-2",
            {
                "tariffType": "normal",
                "voltageLevel": ">=69kV",
                "ftRateSatang": 19.72,
                "usage": {"total_kwh": 500},
            },
            settings=settings,
        )
    assert isinstance(exc.value, InvalidVoltageLevelError)
    assert exc.value.status_category == "validation"
    assert not any(r.levelno >= logging.ERROR for r in caplog.records)


def test_negative_policy_comes_from_settings():
    body = {
        "tariffType": "normal",
        "voltageLevel": "<12kV",
        "ftRateSatang": -10,
        "usage": {"total_kwh": 100},
    }
    with pytest.raises(NegativeValueError):
        calculate_bill("mea", "type-2", body, settings=Settings())

    result = calculate_bill("mea", "type-2", body, settings=Settings(reject_negative=False))
    assert result.ft_charge == pytest.approx(-10)


def test_calculate_plan(settings):
    result = calculate_plan(
        "MEA_3.1.1_medium_normal",
        {
            "ftRateSatang": 19.72,
            "peakKvar": 120,
            "highestDemandChargeLast12m": 20000,
            "usage": {"peak_kw": 100, "total_kwh": 40000},
        },
        settings=settings,
    )
    assert result.total == pytest.approx(164149.021)


def test_calculate_plan_accepts_matching_fields(settings):
    result = calculate_plan(
        "PEA_2.1.3_small_normal",
        {
            "tariffType": "normal",
            "voltageLevel": "<22kV",
            "ftRateSatang": 19.72,
            "usage": {"total_kwh": 500},
        },
        settings=settings,
    )
    assert result.total == pytest.approx(2264.9439)


def test_calculate_plan_rejects_conflicts(settings):
    body = {"ftRateSatang": 0, "usage": {"total_kwh": 1}}
    with pytest.raises(InvalidTariffTypeError):
        calculate_plan("MEA_2.1.3_small_normal", {**body, "tariffType": "tou"}, settings=settings)
    with pytest.raises(InvalidVoltageLevelError):
        calculate_plan("MEA_2.1.3_small_normal", {**body, "voltageLevel": "12-24kV"}, settings=settings)


def test_calculate_plan_errors(settings):
    with pytest.raises(InvalidPlanNameError):
        calculate_plan("MEA_3.3.1_medium_normal", {"ftRateSatang": 0}, settings=settings)
    with pytest.raises(MissingFieldError, match="usage"):
        calculate_plan("MEA_2.1.3_small_normal", {"ftRateSatang": 0}, settings=settings)


@pytest.mark.parametrize("payload", [None, {}, [1, 2], "body"])
def test_calculate_plan_requires_an_object(settings, payload):
    with pytest.raises(EmptyBodyError, match="Request body is required"):
        calculate_plan("MEA_2.1.3_small_normal", payload, settings=settings)


def test_envelope(settings):
    result = calculate_bill(
        "mea",
        "type-2",
        {
            "tariffType": "normal",
            "voltageLevel": "<12kV",
            "ftRateSatang": 19.72,
            "usage": {"total_kwh": 500},
        },
        settings=settings,
    )
    wrapped = envelope(result, 2)
    assert wrapped["success"] is True
    assert wrapped["data"]["totalBill"] == 2264.94
    assert envelope(result)["data"]["vat"] == pytest.approx(148.1739)
