# app/core/barcode.py
"""
Checksum validation for numeric linear barcodes (EAN-13, EAN-8, UPC-A)
and the random ``SKU-`` generator used when an asset has no printed code.
"""
import re
import random
import secrets
import string
from typing import Iterable, Optional

from loguru import logger

from app.core.exceptions import BarcodeFormatError, BarcodeChecksumError
from app.models.enum import BarcodeType

_LINEAR_BARCODE = re.compile(r"^([0-9]{8}|[0-9]{12}|[0-9]{13})$")
_SKU_ALPHABET = string.digits + string.ascii_uppercase
SKU_PREFIX = "SKU-"
SKU_RANDOM_LENGTH = 6


def _digits(value: str):
    return [int(ch) for ch in value]


def _check_digit(total: int) -> int:
    return (10 - total % 10) % 10


def ean13_check_digit(first12: str) -> int:
    """Bobot 1,3,1,3,... dimulai dari digit pertama."""
    if not re.fullmatch(r"[0-9]{12}", first12):
        raise BarcodeFormatError("EAN-13 check digit needs exactly 12 digits.")
    total = sum(d * (1 if idx % 2 == 0 else 3) for idx, d in enumerate(_digits(first12)))
    return _check_digit(total)


def ean8_check_digit(first7: str) -> int:
    """Bobot 3,1,3,1,... dimulai dari digit pertama."""
    if not re.fullmatch(r"[0-9]{7}", first7):
        raise BarcodeFormatError("EAN-8 check digit needs exactly 7 digits.")
    total = sum(d * (3 if idx % 2 == 0 else 1) for idx, d in enumerate(_digits(first7)))
    return _check_digit(total)


def upca_check_digit(first11: str) -> int:
    if not re.fullmatch(r"[0-9]{11}", first11):
        raise BarcodeFormatError("UPC-A check digit needs exactly 11 digits.")
    digits = _digits(first11)
    sum_odd = sum(digits[0::2])   # posisi 1,3,...,11
    sum_even = sum(digits[1::2])  # posisi 2,4,...,10
    return _check_digit(sum_odd * 3 + sum_even)


def validate_ean13(value: str) -> bool:
    if not re.fullmatch(r"[0-9]{13}", value or ""):
        return False
    return ean13_check_digit(value[:12]) == int(value[12])


def validate_ean8(value: str) -> bool:
    if not re.fullmatch(r"[0-9]{8}", value or ""):
        return False
    return ean8_check_digit(value[:7]) == int(value[7])


def validate_upca(value: str) -> bool:
    if not re.fullmatch(r"[0-9]{12}", value or ""):
        return False
    return upca_check_digit(value[:11]) == int(value[11])


def validate_barcode(raw: str) -> BarcodeType:
    """
    Classify and verify a scanned/typed code.
    Raises BarcodeFormatError when the input is not an 8/12/13 digit string,
    BarcodeChecksumError when the digits are fine but the check digit is wrong.
    """
    code = str(raw or "").strip()
    if not _LINEAR_BARCODE.match(code):
        logger.debug(f"Barcode rejected (format): {code!r}")
        raise BarcodeFormatError(
            "Hanya menerima barcode batang numerik (EAN-8/UPC-A/EAN-13)."
        )

    if len(code) == 13:
        barcode_type, ok = BarcodeType.EAN13, validate_ean13(code)
    elif len(code) == 8:
        barcode_type, ok = BarcodeType.EAN8, validate_ean8(code)
    else:
        barcode_type, ok = BarcodeType.UPCA, validate_upca(code)

    if not ok:
        logger.debug(f"Barcode rejected (checksum, {barcode_type.value}): {code}")
        raise BarcodeChecksumError(
            f"Checksum barcode {barcode_type.value} tidak sesuai. Coba scan ulang."
        )
    return barcode_type


def generate_sku(existing_skus: Iterable[Optional[str]], rng: Optional[random.Random] = None) -> str:
    """Random ``SKU-XXXXXX`` code, resampled until it collides with none of existing_skus."""
    taken = {sku for sku in existing_skus if sku}
    chooser = rng or secrets.SystemRandom()
    while True:
        sku = SKU_PREFIX + "".join(chooser.choice(_SKU_ALPHABET) for _ in range(SKU_RANDOM_LENGTH))
        if sku not in taken:
            return sku
        logger.debug(f"Generated SKU {sku} collides with an existing asset, retrying.")
