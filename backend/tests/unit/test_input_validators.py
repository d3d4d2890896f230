"""
Unit tests for INPUT node answer validation.
"""
import pytest
from chatflow.flow.input_validators import (
    InputValidator, ValidationErrorCode, validate_input,
    validate_cpf_checksum, validate_cnpj_checksum, validate_cnh_checksum,
    clean_phone, is_valid_plate
)


@pytest.fixture
def validator():
    """Create an InputValidator instance."""
    return InputValidator()


class TestEmailValidation:
    """Tests for email validation."""

    def test_valid_email(self, validator):
        result = validator.validate("email", "  Joao@Email.com ")
        assert result.is_valid
        assert result.cleaned_value == "joao@email.com"

    @pytest.mark.parametrize("value", ["not-an-email", "a@b", "a@@b.com", "a b@c.com", "@b.com"])
    def test_invalid_email(self, validator, value):
        result = validator.validate("email", value)
        assert not result.is_valid
        assert result.error_code == ValidationErrorCode.INVALID_FORMAT
        assert "Email inválido" in result.error_message


class TestPhoneValidation:
    """Tests for Brazilian phone validation."""

    def test_mobile(self, validator):
        result = validator.validate("phone", "(11) 99999-8888")
        assert result.is_valid
        assert result.cleaned_value == "11999998888"

    def test_country_code_is_stripped(self):
        assert clean_phone("+55 11 99999-8888") == "11999998888"

    def test_landline(self, validator):
        assert validator.is_valid("phone", "1133334444")

    def test_too_short(self, validator):
        assert not validator.is_valid("phone", "99998888")

    def test_mobile_must_start_with_nine(self, validator):
        assert not validator.is_valid("phone", "11899998888")


class TestNumberValidation:
    """Tests for number validation."""

    def test_digits(self, validator):
        assert validator.is_valid("number", "42")

    def test_letters_rejected(self, validator):
        result = validator.validate("number", "quarenta")
        assert not result.is_valid
        assert result.error_message == "Por favor, informe apenas números."

    def test_non_ascii_digits_rejected(self, validator):
        assert not validator.is_valid("number", "\u00b2")
        assert not validator.is_valid("number", "\u0663")


class TestDocumentChecksums:
    """Tests for CPF, CNPJ and CNH check digits."""

    def test_valid_cpf(self, validator):
        result = validator.validate("cpf", "529.982.247-25")
        assert result.is_valid
        assert result.cleaned_value == "52998224725"

    def test_cpf_altered_check_digit(self):
        is_valid, error = validate_cpf_checksum("52998224724")
        assert not is_valid
        assert "dígito verificador" in error

    def test_cpf_repeated_digits(self):
        assert validate_cpf_checksum("11111111111") == (False, "CPF inválido")

    def test_cpf_wrong_length(self, validator):
        result = validator.validate("cpf", "123")
        assert not result.is_valid
        assert result.error_code == ValidationErrorCode.INVALID_CHECKSUM

    def test_valid_cnpj(self, validator):
        result = validator.validate("cnpj", "11.222.333/0001-81")
        assert result.is_valid
        assert result.cleaned_value == "11222333000181"

    def test_cnpj_altered_check_digit(self):
        is_valid, _ = validate_cnpj_checksum("11222333000182")
        assert not is_valid

    def test_valid_cnh(self):
        assert validate_cnh_checksum("12345678900") == (True, None)

    def test_cnh_altered_check_digit(self, validator):
        assert not validator.is_valid("cnh", "12345678901")

    def test_cnh_repeated_digits(self):
        is_valid, _ = validate_cnh_checksum("00000000000")
        assert not is_valid


class TestPlateValidation:
    """Tests for vehicle plates."""

    @pytest.mark.parametrize("plate", ["ABC1234", "abc-1234", "ABC1D23"])
    def test_valid_plates(self, plate):
        assert is_valid_plate(plate)

    def test_cleaned_plate(self, validator):
        assert validator.validate("plate", "abc-1d23").cleaned_value == "ABC1D23"

    def test_invalid_plate(self, validator):
        assert not validator.is_valid("plate", "AB12345")


class TestGeneralBehaviour:
    """Tests for empty answers and unknown formats."""

    def test_empty_answer_is_valid(self, validator):
        result = validator.validate("email", "   ")
        assert result.is_valid
        assert result.cleaned_value == ""

    def test_text_accepts_anything(self):
        result = validate_input("text", "  qualquer coisa ")
        assert result.is_valid
        assert result.cleaned_value == "qualquer coisa"

    def test_unknown_format_accepts_anything(self):
        assert validate_input("cep", "abc").is_valid

    def test_format_name_is_case_insensitive(self):
        assert not validate_input("EMAIL", "x").is_valid
