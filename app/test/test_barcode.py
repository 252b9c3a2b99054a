"""Barcode checksum (EAN-13 / EAN-8 / UPC-A) and SKU generation."""
import random

import pytest

from app.core.barcode import (
    SKU_PREFIX,
    ean8_check_digit,
    ean13_check_digit,
    generate_sku,
    upca_check_digit,
    validate_barcode,
    validate_ean8,
    validate_ean13,
    validate_upca,
)
from app.core.exceptions import BarcodeChecksumError, BarcodeFormatError
from app.models.enum import BarcodeType


def test_ean13_known_codes():
    assert ean13_check_digit("400638133393") == 1
    assert validate_ean13("4006381333931")
    assert not validate_ean13("4006381333932")


def test_ean8_known_codes():
    assert ean8_check_digit("9638507") == 4
    assert validate_ean8("96385074")
    assert not validate_ean8("96385075")


def test_upca_known_codes():
    assert upca_check_digit("03600029145") == 2
    assert validate_upca("036000291452")
    assert not validate_upca("036000291453")


@pytest.mark.parametrize("value", ["", "123", "40063813339311", "40063813339a1", " 4006381333931"])
def test_ean13_rejects_wrong_format(value):
    assert not validate_ean13(value)


def test_validate_barcode_classifies_by_length():
    assert validate_barcode("4006381333931") == BarcodeType.EAN13
    assert validate_barcode("96385074") == BarcodeType.EAN8
    assert validate_barcode(" 036000291452 ") == BarcodeType.UPCA


@pytest.mark.parametrize("value", ["ABC123", "1234567", "12345678901", "https://example.com/qr", ""])
def test_validate_barcode_rejects_non_linear_codes(value):
    with pytest.raises(BarcodeFormatError):
        validate_barcode(value)


def test_validate_barcode_rejects_bad_checksum():
    with pytest.raises(BarcodeChecksumError) as exc_info:
        validate_barcode("4006381333930")
    assert "EAN-13" in exc_info.value.detail


def test_generate_sku_format():
    sku = generate_sku([])
    assert sku.startswith(SKU_PREFIX)
    suffix = sku[len(SKU_PREFIX):]
    assert len(suffix) == 6
    assert all(ch.isdigit() or ch.isupper() for ch in suffix)


def test_generate_sku_avoids_existing():
    first = generate_sku([], rng=random.Random(7))
    # Seed yang sama menghasilkan kandidat pertama yang sama, jadi harus di-resample
    second = generate_sku([first, None], rng=random.Random(7))
    assert second != first
    assert second.startswith(SKU_PREFIX)


def test_ten_digit_code_is_not_a_barcode():
    code = "4006381333"
    assert not validate_ean13(code)
    assert not validate_ean8(code)
    assert not validate_upca(code)
    with pytest.raises(BarcodeFormatError):
        validate_barcode(code)


def test_non_ascii_digits_are_rejected():
    # EAN-13 4006381333931 ditulis dengan angka Arab-Indic
    code = "٤٠٠٦٣٨١٣٣٣٩٣١"
    assert not validate_ean13(code)
    assert not validate_upca("٠٣٦٠٠٠٢٩١٤٥٢")
    assert not validate_ean8("٩٦٣٨٥٠٧٤")
    with pytest.raises(BarcodeFormatError):
        validate_barcode(code)
    with pytest.raises(BarcodeFormatError):
        ean13_check_digit("٤٠٠٦٣٨١٣٣٣٩٣")
