"""Tests for ARINC 429 BNR/float word encoders and SSM combination."""

import math
import pytest
from a429codec.core.encode429 import (
    NOSDI, BnrSsm, WordOverflowError,
    build_bnr_word, split_bnr_word, build_float_word, split_float_word,
    combine_ssm, word_fields, float_to_bits, bits_to_float,
)


@pytest.mark.unit
class TestBuildBnr:
    """Test BNR word building."""

    def test_regression_vector_no_sdi(self):
        """Test the fixed no-SDI regression vector."""
        word = build_bnr_word(4096.0, 2048.0, 1, NOSDI, 128)
        assert word == 0x28000080

    def test_with_sdi(self):
        """Test SDI and SSM placement."""
        # 2048/4096 * 2^18 = 0x20000, shifted to bit 10
        word = build_bnr_word(4096.0, 2048.0, 3, 2, 0xC1)
        assert word == 0x680002C1

    def test_zero(self):
        """Test encoding zero leaves only SSM, SDI and label."""
        assert build_bnr_word(100.0, 0.0, 0, 1, 0x12) == 0x00000112
        assert build_bnr_word(100.0, 0.0, 0, NOSDI, 0x12) == 0x00000012

    def test_negative(self):
        """Test negative values are two's complement in the data field."""
        word = build_bnr_word(4096.0, -2048.0, 0, NOSDI, 0)
        assert word == 0x18000000

    def test_any_sdi_above_three_means_no_sdi(self):
        """Test every value above 3 selects no-SDI mode."""
        assert build_bnr_word(4096.0, 2048.0, 1, 7, 128) == build_bnr_word(4096.0, 2048.0, 1, NOSDI, 128)

    def test_rounding_ties_away_from_zero(self):
        """Test rounding of half steps."""
        # range = 2^18 makes one data step equal 1.0 in SDI mode
        scale = float(1 << 18)
        assert build_bnr_word(scale, 0.5, 0, 0, 0) == 1 << 10
        assert build_bnr_word(scale, 2.5, 0, 0, 0) == 3 << 10  # round-half-even would give 2
        assert build_bnr_word(scale, -0.5, 0, 0, 0) == (-1 << 10) & 0x1FFFFFFF
        assert build_bnr_word(scale, 0.4, 0, 0, 0) == 0

    def test_parity_bit_never_set(self):
        """Test bit 31 stays clear."""
        word = build_bnr_word(1.0, -0.999, 3, 3, 0xFF)
        assert word & 0x80000000 == 0

    def test_overflow_wraps_by_default(self):
        """Test out-of-range values silently wrap."""
        # +range lands exactly on the sign bit
        word = build_bnr_word(4096.0, 4096.0, 0, 0, 0)
        data, _, _ = split_bnr_word(word, False, 4096.0)
        assert data == -4096.0

        # Twice the range wraps all the way to zero
        assert build_bnr_word(4096.0, 8192.0, 0, 0, 0) == 0

    def test_overflow_clamp(self):
        """Test saturating overflow mode."""
        word = build_bnr_word(4096.0, 4096.0, 0, 0, 0, overflow='clamp')
        data, _, _ = split_bnr_word(word, False, 4096.0)
        assert data == pytest.approx(4096.0 - 4096.0 / 2 ** 18)

        word = build_bnr_word(4096.0, -10000.0, 0, NOSDI, 0, overflow='clamp')
        data, _, _ = split_bnr_word(word, True, 4096.0)
        assert data == -4096.0

    def test_overflow_error(self):
        """Test error overflow mode."""
        with pytest.raises(WordOverflowError, match="does not fit a 19-bit BNR field"):
            build_bnr_word(4096.0, 5000.0, 0, 0, 0, overflow='error')

        # Values in range still encode
        assert build_bnr_word(4096.0, 2048.0, 1, NOSDI, 128, overflow='error') == 0x28000080

    def test_overflow_error_is_value_error(self):
        """Test WordOverflowError can be caught as ValueError."""
        with pytest.raises(ValueError):
            build_bnr_word(1.0, -2.0, 0, NOSDI, 0, overflow='error')

    def test_invalid_arguments(self):
        """Test argument validation."""
        with pytest.raises(ValueError, match="Range must be positive"):
            build_bnr_word(0.0, 1.0, 0, 0, 0)
        with pytest.raises(ValueError, match="SSM must be 0-3"):
            build_bnr_word(1.0, 0.5, 4, 0, 0)
        with pytest.raises(ValueError, match="SDI must be"):
            build_bnr_word(1.0, 0.5, 0, -1, 0)
        with pytest.raises(ValueError, match="Label must be 0-255"):
            build_bnr_word(1.0, 0.5, 0, 0, 256)
        with pytest.raises(ValueError, match="Invalid overflow mode"):
            build_bnr_word(1.0, 0.5, 0, 0, 0, overflow='saturate')


@pytest.mark.unit
class TestSplitBnr:
    """Test BNR word splitting."""

    def test_regression_vector(self):
        """Test splitting the regression vector."""
        data, ssm, sdi = split_bnr_word(0x28000080, True, 4096.0)
        assert data == 2048.0
        assert ssm == 1
        assert sdi == 0

    def test_sdi_extracted(self):
        """Test SDI is read from bits 8-9."""
        data, ssm, sdi = split_bnr_word(0x680002C1, False, 4096.0)
        assert data == 2048.0
        assert ssm == 3
        assert sdi == 2

    def test_negative(self):
        """Test sign extension."""
        data, ssm, _ = split_bnr_word(0x18000000, True, 4096.0)
        assert data == -2048.0
        assert ssm == 0

    def test_parity_ignored(self):
        """Test a set parity bit does not disturb the fields."""
        assert split_bnr_word(0x680002C1 | 0x80000000, False, 4096.0) == (2048.0, 3, 2)

    def test_label_ignored(self):
        """Test label bits never leak into data."""
        data, _, _ = split_bnr_word(0x000000FF, True, 4096.0)
        assert data == 0.0

    def test_round_trip_examples(self):
        """Test a few round trips against the quantization bound."""
        for range_, value in [(180.0, -123.4567), (512.0, 0.001), (131072.0, 35000.0)]:
            word = build_bnr_word(range_, value, 3, 1, 0x55)
            data, ssm, sdi = split_bnr_word(word, False, range_)
            assert abs(data - value) <= range_ / 2 ** 19
            assert (ssm, sdi) == (3, 1)

            word = build_bnr_word(range_, value, 2, NOSDI, 0x55)
            data, ssm, sdi = split_bnr_word(word, True, range_)
            assert abs(data - value) <= range_ / 2 ** 21
            assert (ssm, sdi) == (2, 0)

    def test_invalid_word(self):
        """Test words outside 32 bits are rejected."""
        with pytest.raises(ValueError, match="32-bit"):
            split_bnr_word(1 << 32, False, 1.0)
        with pytest.raises(ValueError, match="32-bit"):
            split_bnr_word(-1, False, 1.0)

    def test_invalid_range(self):
        """Test split rejects the same ranges build does."""
        for range_ in (0.0, -4096.0):
            with pytest.raises(ValueError, match="Range must be positive"):
                split_bnr_word(0x28000080, True, range_)


@pytest.mark.unit
class TestBitCasts:
    """Test float/bit reinterpretation helpers."""

    def test_float_to_bits(self):
        """Test known IEEE 754 patterns."""
        assert float_to_bits(1.0) == 0x3F800000
        assert float_to_bits(-2.0) == 0xC0000000
        assert float_to_bits(0.0) == 0x00000000

    def test_float_to_bits_overflow_is_inf(self):
        """Test values beyond float32 become infinity."""
        assert float_to_bits(1e39) == 0x7F800000
        assert float_to_bits(-1e39) == 0xFF800000

    def test_bits_to_float(self):
        """Test reinterpretation back to float."""
        assert bits_to_float(0x3FC00000) == 1.5
        assert math.isnan(bits_to_float(0x7FC00000))


@pytest.mark.unit
class TestFloatWord:
    """Test float word encoding."""

    def test_exact_pattern(self):
        """Test 1.5 packs to the expected pattern."""
        assert build_float_word(1.5, True, 0) == 0x1FE00000

    def test_round_trip(self):
        """Test 1.5 survives the round trip."""
        data, valid = split_float_word(build_float_word(1.5, True, 0x80))
        assert valid is True
        assert data == pytest.approx(1.5, rel=1e-6)

    def test_negative(self):
        """Test the sign bit is kept in bit 30."""
        word = build_float_word(-2.0, True, 0)
        assert word == 0x60000000
        assert split_float_word(word) == (-2.0, True)

    def test_invalid(self):
        """Test the NaN marker."""
        word = build_float_word(0.0, False, 0x55)
        assert word == 0x3FE00055

        data, valid = split_float_word(word)
        assert valid is False
        assert data == 0.0

    def test_invalid_ignores_data(self):
        """Test invalid words do not depend on the data."""
        assert build_float_word(123.0, False, 7) == build_float_word(-5.0, False, 7)

    def test_label_preserved(self):
        """Test label bits are untouched."""
        for label in (0, 1, 0x80, 0xC1, 0xFF):
            assert build_float_word(-987.25, True, label) & 0xFF == label

    def test_precision(self):
        """Test relative error stays within the kept mantissa bits."""
        for value in (123.456, -0.0078125, 6.02e23, 1e-20, 3.14159):
            data, valid = split_float_word(build_float_word(value, True, 0))
            assert valid
            assert abs(data - value) <= abs(value) * 2 ** -13

    def test_nan_data_reads_invalid(self):
        """Test a NaN value sent as valid still decodes as invalid."""
        _, valid = split_float_word(build_float_word(float('nan'), True, 0))
        assert valid is False

    def test_infinity(self):
        """Test values beyond float32 range saturate to infinity."""
        data, valid = split_float_word(build_float_word(1e39, True, 0))
        assert valid is True
        assert math.isinf(data) and data > 0

    def test_invalid_label(self):
        """Test label validation."""
        with pytest.raises(ValueError, match="Label must be 0-255"):
            build_float_word(1.0, True, 300)


@pytest.mark.unit
class TestCombineSsm:
    """Test SSM combination."""

    @pytest.mark.parametrize("ssm1,ssm2,expected", [
        (3, 3, 3),
        (0, 2, 0),
        (2, 0, 0),
        (1, 1, 1),
        (3, 0, 0),
        (0, 0, 0),
        (3, 1, 1),
        (2, 3, 1),
        (2, 2, 1),
    ])
    def test_truth_table(self, ssm1, ssm2, expected):
        """Test the combination rule."""
        assert combine_ssm(ssm1, ssm2) == expected

    def test_symmetric(self):
        """Test argument order does not matter."""
        for a in range(4):
            for b in range(4):
                assert combine_ssm(a, b) == combine_ssm(b, a)

    def test_enum_values(self):
        """Test BnrSsm names work with the combiner."""
        assert combine_ssm(BnrSsm.NORMAL_OPERATION, BnrSsm.NORMAL_OPERATION) == BnrSsm.NORMAL_OPERATION
        assert combine_ssm(BnrSsm.FAILURE_WARNING, BnrSsm.NORMAL_OPERATION) == BnrSsm.FAILURE_WARNING
        assert combine_ssm(BnrSsm.FUNCTIONAL_TEST, BnrSsm.NORMAL_OPERATION) == BnrSsm.NO_COMPUTED_DATA


@pytest.mark.unit
class TestWordFields:
    """Test raw field extraction."""

    def test_with_sdi(self):
        """Test fields of an SDI word."""
        fields = word_fields(0x680002C1)
        assert fields == {
            'label': '203',
            'wire_label': 0xC1,
            'sdi': 2,
            'data_bits': 0x20000,
            'ssm': 3,
            'parity': 0,
        }

    def test_no_sdi(self):
        """Test fields of a no-SDI word."""
        fields = word_fields(0x28000080, no_sdi=True)
        assert fields['label'] == '001'
        assert fields['sdi'] is None
        assert fields['data_bits'] == 0x080000
        assert fields['ssm'] == 1

    def test_parity(self):
        """Test the received parity bit is reported."""
        assert word_fields(0x80000000)['parity'] == 1
