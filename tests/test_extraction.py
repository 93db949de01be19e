"""Tests for text normalization, value parsers, cascades, and vendor sniffing."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from src.extraction.cascade import Pattern, apply_rules, first_match, is_present
from src.extraction.normalizer import normalize_text
from src.extraction.parsers import (
    add_years,
    month_from_name,
    normalize_rut,
    parse_chilean_amount,
    parse_comma_decimal,
    parse_concatenated_date,
    parse_date,
    parse_datetime,
    parse_abbreviated_date,
    parse_int,
    parse_spanish_date,
    parse_us_amount,
)
from src.extraction.vendors import (
    Carrier,
    GuiaVendor,
    classify_carrier,
    classify_guia_vendor,
)


class TestNormalizeText:
    """Tests for the OCR text normalizer."""

    def test_collapses_line_breaks(self) -> None:
        assert normalize_text("Folio\r\n123\nTotal") == "Folio 123 Total"

    def test_collapses_whitespace_runs(self) -> None:
        assert normalize_text("  Total   Pagado\t\t 8.153.962  ") == "Total Pagado 8.153.962"

    def test_keeps_case_and_accents(self) -> None:
        assert normalize_text("Situación D.R.: vigente") == "Situación D.R.: vigente"

    def test_empty_and_none(self) -> None:
        assert normalize_text("") == ""
        assert normalize_text(None) == ""
        assert normalize_text(" \r\n\t ") == ""

    @pytest.mark.parametrize(
        "raw",
        [
            "CARNÉ\r\n\r\nADUANERO",
            "  a \n\n b\t\tc  ",
            "Nº D.R .:\r\n 2025 - 123",
            "",
        ],
    )
    def test_idempotent(self, raw: str) -> None:
        once = normalize_text(raw)
        assert normalize_text(once) == once


class TestAmountParsers:
    """Tests for decimal amount post-processors."""

    def test_chilean_thousands(self) -> None:
        assert parse_chilean_amount("8.153.962") == Decimal("8153962")

    def test_chilean_with_decimals(self) -> None:
        assert parse_chilean_amount("33.177,00") == Decimal("33177.00")

    def test_us_amount(self) -> None:
        assert parse_us_amount("12,215.50") == Decimal("12215.50")

    def test_comma_decimal(self) -> None:
        assert parse_comma_decimal("1234,5") == Decimal("1234.5")
        assert parse_comma_decimal("12.215,00") is None

    def test_invalid_amount(self) -> None:
        assert parse_chilean_amount("abc") is None

    def test_parse_int(self) -> None:
        assert parse_int(" 40 ") == 40
        assert parse_int("x") is None


class TestDateParsers:
    """Tests for the date formats found across document types."""

    def test_spanish_verbose_date(self) -> None:
        assert parse_spanish_date("26", "Junio", "2025") == date(2025, 6, 26)

    def test_dash_date(self) -> None:
        assert parse_date("24-06-2025") == date(2025, 6, 24)

    def test_slash_date(self) -> None:
        assert parse_date("15/07/2025", fmt="%d/%m/%Y") == date(2025, 7, 15)

    def test_concatenated_date(self) -> None:
        assert parse_concatenated_date("12062025") == date(2025, 6, 12)

    def test_same_day_across_formats(self) -> None:
        assert (
            parse_spanish_date("12", "junio", "2025")
            == parse_date("12-06-2025")
            == parse_concatenated_date("12062025")
        )

    def test_invalid_dates_return_none(self) -> None:
        assert parse_date("31-02-2025") is None
        assert parse_spanish_date("1", "Brumario", "2025") is None
        assert parse_concatenated_date("no date") is None

    def test_month_lookup(self) -> None:
        assert month_from_name("ENERO") == 1
        assert month_from_name("diciembre") == 12
        assert month_from_name("june") is None

    def test_datetime(self) -> None:
        assert parse_datetime("24-06-2025  10:15:00") == datetime(2025, 6, 24, 10, 15)

    def test_abbreviated_month(self) -> None:
        assert parse_abbreviated_date("15", "MAR", "2020") == date(2020, 3, 15)
        assert parse_abbreviated_date("1", "dic", "2019") == date(2019, 12, 1)
        assert parse_abbreviated_date("1", "SET", "2019") is None

    @pytest.mark.parametrize(
        ("abbr", "month"),
        [("ENE", 1), ("ABR", 4), ("AGO", 8), ("SEP", 9), ("DIC", 12)],
    )
    def test_all_abbreviations_known(self, abbr: str, month: int) -> None:
        assert parse_abbreviated_date("10", abbr, "2024") == date(2024, month, 10)

    def test_add_years(self) -> None:
        assert add_years(date(2020, 3, 15), 5) == date(2025, 3, 15)
        assert add_years(date(2020, 2, 29), 3) == date(2023, 2, 28)


class TestNormalizeRut:
    """Tests for RUT canonicalization."""

    @pytest.mark.parametrize(
        "raw", ["15.970.128-K", "15970128-K", "15,970,128-K", "15 970 128-k", "15970128K"]
    )
    def test_variants_share_canonical_form(self, raw: str) -> None:
        assert normalize_rut(raw) == "15.970.128-K"

    def test_seven_digit_body(self) -> None:
        assert normalize_rut("9.876.543-2") == "9.876.543-2"

    def test_check_digit_not_verified(self) -> None:
        assert normalize_rut("11.111.111-5") == "11.111.111-5"

    def test_not_a_rut(self) -> None:
        assert normalize_rut("ABC-1") is None
        assert normalize_rut("123-4") is None


class TestPattern:
    """Tests for a single cascade candidate."""

    def test_capture_is_trimmed(self) -> None:
        assert Pattern(r"Folio(\s+\d+\s)").apply("Folio  123 x") == "123"

    def test_no_match(self) -> None:
        assert Pattern(r"Folio\s+(\d+)").apply("Total 5") is None

    def test_whole_match_group(self) -> None:
        assert Pattern(r"N\d+", group=0).apply("Carné N8") == "N8"

    def test_transform_applied(self) -> None:
        pattern = Pattern(r"Total\s+([\d\.]+)", transform=parse_chilean_amount)
        assert pattern.apply("Total 1.000") == Decimal("1000")


class TestFirstMatch:
    """Tests for ordered cascade evaluation."""

    def test_first_successful_pattern_wins(self) -> None:
        steps = [
            Pattern(r"Fecha de Aceptación:\s*(\d{8})"),
            Pattern(r"Fecha Aceptación:\s*(\d{8})"),
            Pattern(r"(\d{8})"),
        ]
        assert first_match("Fecha Aceptación: 12062025 99999999", steps) == "12062025"

    def test_falls_back_to_loose_pattern(self) -> None:
        steps = [Pattern(r"Folio\s+(\d+)"), Pattern(r"(\d{10})")]
        assert first_match("4560010758", steps) == "4560010758"

    def test_failed_transform_moves_on(self) -> None:
        steps = [
            Pattern(r"(\d{2}-\d{2}-\d{4})", transform=parse_date),
            Pattern(r"(\d{2}/\d{2}/\d{4})", transform=lambda v: parse_date(v, "%d/%m/%Y")),
        ]
        assert first_match("99-99-2025 01/02/2025", steps) == date(2025, 2, 1)

    def test_callable_steps(self) -> None:
        assert first_match("abc", [lambda text: None, lambda text: text.upper()]) == "ABC"

    def test_exhaustion_returns_none(self) -> None:
        assert first_match("nothing here", [Pattern(r"Folio\s+(\d+)")]) is None

    def test_deterministic(self) -> None:
        steps = [Pattern(r"Folio\s+(\d+)")]
        text = "Folio 4560010758"
        assert {first_match(text, steps) for _ in range(5)} == {"4560010758"}


class TestApplyRules:
    """Tests for running a whole rule table."""

    def test_fills_matching_fields(self) -> None:
        rules = {"folio": [Pattern(r"Folio\s+(\d+)")], "rut": [Pattern(r"RUT\s+(\S+)")]}
        fields = apply_rules("Folio 12", rules, {})
        assert fields == {"folio": "12"}

    def test_keeps_present_values(self) -> None:
        rules = {"folio": [Pattern(r"Folio\s+(\d+)")]}
        fields = apply_rules("Folio 12", rules, {"folio": "99"})
        assert fields["folio"] == "99"

    def test_overwrite(self) -> None:
        rules = {"folio": [Pattern(r"Folio\s+(\d+)")]}
        fields = apply_rules("Folio 12", rules, {"folio": "99"}, overwrite=True)
        assert fields["folio"] == "12"

    def test_is_present(self) -> None:
        assert is_present("x")
        assert is_present(Decimal("0"))
        assert not is_present("  ")
        assert not is_present(None)


class TestVendorClassification:
    """Tests for letterhead and carrier detection."""

    def test_jorge_stein(self) -> None:
        assert classify_guia_vendor("Agencia de Aduanas Jorge Stein y Cia.") is GuiaVendor.JORGE_STEIN
        assert classify_guia_vendor("www.stein.cl") is GuiaVendor.JORGE_STEIN

    def test_alberto_rubio(self) -> None:
        assert classify_guia_vendor("Alberto Rubio") is GuiaVendor.ALBERTO_RUBIO
        assert classify_guia_vendor("contacto@agenciarubio.cl") is GuiaVendor.ALBERTO_RUBIO

    def test_unknown_vendor(self) -> None:
        assert classify_guia_vendor("Agencia Cualquiera") is GuiaVendor.UNKNOWN

    def test_carriers(self) -> None:
        assert classify_carrier("Maersk Line") is Carrier.MAERSK
        assert classify_carrier("Mediterranean Shipping Company") is Carrier.MSC
        assert classify_carrier("IANTAYLOR CHILE") is Carrier.IANTAYLOR
        assert classify_carrier("Otra Naviera") is Carrier.UNKNOWN
