"""
Input Validators - Format checks for answers captured by INPUT nodes.

Supports: text, email, phone, number, cpf, cnpj, cnh and vehicle plate.
An empty answer is always valid here; INPUT nodes enforce ``required``.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Tuple


class ValidationErrorCode(str, Enum):
    """Error codes for validation failures."""
    INVALID_FORMAT = "invalid_format"
    INVALID_CHECKSUM = "invalid_checksum"


@dataclass
class ValidationResult:
    """Result of a validation attempt."""
    is_valid: bool
    cleaned_value: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[ValidationErrorCode] = None
    original_value: Optional[str] = None


# Default messages when the INPUT node configures no errorMessage
DEFAULT_ERROR_MESSAGES: Dict[str, str] = {
    "email": "Email inválido. Exemplo: nome@email.com",
    "phone": "Telefone inválido. Informe DDD + número (ex: 11999998888)",
    "number": "Por favor, informe apenas números.",
    "cpf": "CPF inválido. Verifique os dígitos informados.",
    "cnpj": "CNPJ inválido. Verifique os dígitos informados.",
    "cnh": "CNH inválida. Verifique os dígitos informados.",
    "plate": "Placa inválida. Exemplo: ABC1234 ou ABC1D23",
}

REQUIRED_MESSAGE = "Este campo é obrigatório. Por favor, responda para continuarmos."

_LEGACY_PLATE = re.compile(r"^[A-Z]{3}\d{4}$")
_MERCOSUL_PLATE = re.compile(r"^[A-Z]{3}\d[A-Z]\d{2}$")


def only_digits(value: str) -> str:
    return re.sub(r"\D", "", value or "")


# ==================== Format checks ====================

def is_valid_email(value: str) -> bool:
    """One @, non-empty local part, dotted domain"""
    if value.count("@") != 1 or any(ch.isspace() for ch in value):
        return False
    local, domain = value.split("@")
    if not local or not domain:
        return False
    if "." not in domain or domain.startswith(".") or domain.endswith("."):
        return False
    return ".." not in domain


def clean_phone(value: str) -> str:
    """Digits only, without the Brazilian country code"""
    digits = only_digits(value)
    if len(digits) in (12, 13) and digits.startswith("55"):
        digits = digits[2:]
    return digits


def is_valid_phone(value: str) -> bool:
    """Area code (two non-zero digits) + 8-digit landline or 9-digit mobile"""
    digits = clean_phone(value)
    if len(digits) not in (10, 11):
        return False
    area, number = digits[:2], digits[2:]
    if "0" in area:
        return False
    if len(number) == 9:
        return number[0] == "9"
    return number[0] in "2345678"


def is_valid_number(value: str) -> bool:
    return re.fullmatch(r"[0-9]+", value) is not None


def validate_cpf_checksum(cpf: str) -> Tuple[bool, Optional[str]]:
    """Validate CPF checksum (Brazilian ID number)."""
    cpf = only_digits(cpf)
    if len(cpf) != 11:
        return False, "CPF deve ter 11 dígitos"

    # Check for known invalid CPFs
    if cpf == cpf[0] * 11:
        return False, "CPF inválido"

    # Calculate first check digit
    total = sum(int(cpf[i]) * (10 - i) for i in range(9))
    remainder = total % 11
    digit1 = 0 if remainder < 2 else 11 - remainder

    if int(cpf[9]) != digit1:
        return False, "CPF inválido - dígito verificador incorreto"

    # Calculate second check digit
    total = sum(int(cpf[i]) * (11 - i) for i in range(10))
    remainder = total % 11
    digit2 = 0 if remainder < 2 else 11 - remainder

    if int(cpf[10]) != digit2:
        return False, "CPF inválido - dígito verificador incorreto"

    return True, None


def validate_cnpj_checksum(cnpj: str) -> Tuple[bool, Optional[str]]:
    """Validate CNPJ checksum (Brazilian company ID)."""
    cnpj = only_digits(cnpj)
    if len(cnpj) != 14:
        return False, "CNPJ deve ter 14 dígitos"

    if cnpj == cnpj[0] * 14:
        return False, "CNPJ inválido"

    weights1 = [5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]
    total = sum(int(cnpj[i]) * weights1[i] for i in range(12))
    remainder = total % 11
    digit1 = 0 if remainder < 2 else 11 - remainder

    if int(cnpj[12]) != digit1:
        return False, "CNPJ inválido - dígito verificador incorreto"

    weights2 = [6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]
    total = sum(int(cnpj[i]) * weights2[i] for i in range(13))
    remainder = total % 11
    digit2 = 0 if remainder < 2 else 11 - remainder

    if int(cnpj[13]) != digit2:
        return False, "CNPJ inválido - dígito verificador incorreto"

    return True, None


def validate_cnh_checksum(cnh: str) -> Tuple[bool, Optional[str]]:
    """Validate CNH checksum (Brazilian driver's license)."""
    cnh = only_digits(cnh)
    if len(cnh) != 11:
        return False, "CNH deve ter 11 dígitos"

    if cnh == cnh[0] * 11:
        return False, "CNH inválida"

    # First digit: weights 9..1; a first digit of 10+ discounts the second
    discount = 0
    total = sum(int(cnh[i]) * (9 - i) for i in range(9))
    digit1 = total % 11
    if digit1 >= 10:
        digit1 = 0
        discount = 2

    # Second digit: weights 1..9
    total = sum(int(cnh[i]) * (1 + i) for i in range(9))
    remainder = total % 11
    digit2 = 0 if remainder >= 10 else remainder - discount
    if digit2 < 0:
        digit2 += 11
    if digit2 >= 10:
        digit2 = 0

    if int(cnh[9]) != digit1 or int(cnh[10]) != digit2:
        return False, "CNH inválida - dígito verificador incorreto"

    return True, None


def clean_plate(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9]", "", value or "").upper()


def is_valid_plate(value: str) -> bool:
    """Legacy AAA9999 or Mercosul AAA9A99"""
    plate = clean_plate(value)
    return bool(_LEGACY_PLATE.match(plate) or _MERCOSUL_PLATE.match(plate))


# ==================== Facade ====================

@dataclass
class FormatRule:
    """How one format is cleaned and checked."""
    cleaner: Callable[[str], str]
    check: Callable[[str], Tuple[bool, Optional[str]]]
    error_code: ValidationErrorCode = ValidationErrorCode.INVALID_FORMAT


def _boolean_check(func: Callable[[str], bool]) -> Callable[[str], Tuple[bool, Optional[str]]]:
    return lambda value: (func(value), None)


class InputValidator:
    """
    Validates answers against the format configured on an INPUT node.

    Unknown formats (and ``text``) accept anything.
    """

    FORMATS: Dict[str, FormatRule] = {
        "email": FormatRule(
            cleaner=lambda x: x.strip().lower(),
            check=_boolean_check(is_valid_email),
        ),
        "phone": FormatRule(
            cleaner=clean_phone,
            check=_boolean_check(is_valid_phone),
        ),
        "number": FormatRule(
            cleaner=lambda x: x.strip(),
            check=_boolean_check(is_valid_number),
        ),
        "cpf": FormatRule(
            cleaner=only_digits,
            check=validate_cpf_checksum,
            error_code=ValidationErrorCode.INVALID_CHECKSUM,
        ),
        "cnpj": FormatRule(
            cleaner=only_digits,
            check=validate_cnpj_checksum,
            error_code=ValidationErrorCode.INVALID_CHECKSUM,
        ),
        "cnh": FormatRule(
            cleaner=only_digits,
            check=validate_cnh_checksum,
            error_code=ValidationErrorCode.INVALID_CHECKSUM,
        ),
        "plate": FormatRule(
            cleaner=clean_plate,
            check=_boolean_check(is_valid_plate),
        ),
    }

    def validate(self, validation_format: Optional[str], value: Optional[str]) -> ValidationResult:
        """
        Validate and clean an answer.

        Args:
            validation_format: Format name (email, phone, cpf, ...)
            value: Raw answer as typed by the contact

        Returns:
            ValidationResult with validation status and cleaned value
        """
        original_value = value or ""
        str_value = original_value.strip()

        if not str_value:
            return ValidationResult(is_valid=True, cleaned_value="", original_value=original_value)

        format_name = (validation_format or "text").strip().lower()
        rule = self.FORMATS.get(format_name)
        if rule is None:
            return ValidationResult(is_valid=True, cleaned_value=str_value, original_value=original_value)

        is_valid, _ = rule.check(str_value)
        if not is_valid:
            return ValidationResult(
                is_valid=False,
                error_message=DEFAULT_ERROR_MESSAGES[format_name],
                error_code=rule.error_code,
                original_value=original_value,
            )

        return ValidationResult(
            is_valid=True,
            cleaned_value=rule.cleaner(str_value),
            original_value=original_value,
        )

    def is_valid(self, validation_format: Optional[str], value: Optional[str]) -> bool:
        return self.validate(validation_format, value).is_valid


def validate_input(validation_format: Optional[str], value: Optional[str]) -> ValidationResult:
    """Validate ``value`` against ``validation_format``"""
    return input_validator.validate(validation_format, value)


# Singleton instance for convenience
input_validator = InputValidator()
