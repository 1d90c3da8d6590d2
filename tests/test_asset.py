"""
Test suite for asset module

Tests Symbol validation, checked int64 Asset arithmetic and the
"100.000 MNT" string form. Amounts are always integer minor units.
"""

import pytest

from token_ledger.asset import Asset, Symbol, INT64_MAX, INT64_MIN
from token_ledger.errors import ArithmeticOverflow, InvalidAmount, InvalidSymbol, SymbolMismatch


MNT = Symbol("MNT", 3)


class TestSymbol:
    """Test Symbol validation and parsing"""

    def test_valid_symbols(self):
        """Test well-formed symbols"""
        assert Symbol("MNT", 3).is_valid()
        assert Symbol("A", 0).is_valid()
        assert Symbol("ABCDEFG", 18).is_valid()

    def test_invalid_symbols(self):
        """Test codes must be 1-7 uppercase letters with precision 0..18"""
        assert not Symbol("", 3).is_valid()
        assert not Symbol("mnt", 3).is_valid()
        assert not Symbol("ABCDEFGH", 3).is_valid()
        assert not Symbol("MN1", 3).is_valid()
        assert not Symbol("MNT", -1).is_valid()
        assert not Symbol("MNT", 19).is_valid()

    def test_symbol_identity_includes_precision(self):
        """Test symbol equality"""
        assert Symbol("MNT", 3) == Symbol("MNT", 3)
        assert Symbol("MNT", 3) != Symbol("MNT", 2)

    def test_symbol_string_form(self):
        """Test the "precision,CODE" form"""
        assert MNT.to_string() == "3,MNT"
        assert Symbol.from_string("3,MNT") == MNT

    def test_symbol_from_string_rejects_garbage(self):
        """Test malformed symbol strings"""
        with pytest.raises(InvalidSymbol):
            Symbol.from_string("MNT")
        with pytest.raises(InvalidSymbol):
            Symbol.from_string("x,MNT")
        with pytest.raises(InvalidSymbol, match="invalid symbol name"):
            Symbol.from_string("3,mnt")


class TestAssetConstruction:
    """Test Asset creation and range checks"""

    def test_asset_creation(self):
        """Test creating an asset"""
        asset = Asset(100000, MNT)
        assert asset.amount == 100000
        assert asset.symbol == MNT
        assert asset.is_valid()
        assert asset.is_positive()
        assert not asset.is_zero()

    def test_zero(self):
        """Test the zero asset"""
        zero = Asset.zero(MNT)
        assert zero.amount == 0
        assert zero.is_zero()
        assert zero.is_valid()

    def test_amount_must_be_integer(self):
        """Test non-integer amounts are rejected"""
        with pytest.raises(InvalidAmount):
            Asset(1.5, MNT)
        with pytest.raises(InvalidAmount):
            Asset(True, MNT)

    def test_amount_outside_int64_rejected(self):
        """Test the int64 range bounds"""
        Asset(INT64_MAX, MNT)
        Asset(INT64_MIN, MNT)
        with pytest.raises(ArithmeticOverflow):
            Asset(INT64_MAX + 1, MNT)
        with pytest.raises(ArithmeticOverflow):
            Asset(INT64_MIN - 1, MNT)

    def test_negative_amount_is_not_valid(self):
        """Test negative amounts"""
        assert not Asset(-1, MNT).is_valid()

    def test_invalid_symbol_makes_asset_invalid(self):
        """Test an asset with a bad symbol"""
        assert not Asset(1, Symbol("bad", 3)).is_valid()


class TestAssetArithmetic:
    """Test checked arithmetic and comparisons"""

    def test_addition_and_subtraction(self):
        """Test asset arithmetic"""
        a = Asset(100000, MNT)
        b = Asset(40000, MNT)

        assert (a + b).amount == 140000
        assert (a - b).amount == 60000
        assert (b - a).amount == -60000

    def test_overflow_is_reported_not_wrapped(self):
        """Test overflow raises instead of wrapping"""
        near_max = Asset(INT64_MAX, MNT)
        with pytest.raises(ArithmeticOverflow):
            near_max + Asset(1, MNT)

        near_min = Asset(INT64_MIN, MNT)
        with pytest.raises(ArithmeticOverflow):
            near_min - Asset(1, MNT)

    def test_symbol_mismatch(self):
        """Test the same code with a different precision is a different symbol"""
        a = Asset(1000, MNT)
        b = Asset(100, Symbol("MNT", 2))

        with pytest.raises(SymbolMismatch):
            a + b
        with pytest.raises(SymbolMismatch):
            a - b
        with pytest.raises(SymbolMismatch):
            a < b

    def test_comparisons(self):
        """Test ordering of same-symbol assets"""
        small = Asset(1, MNT)
        large = Asset(2, MNT)

        assert small < large
        assert small <= large
        assert large > small
        assert large >= small
        assert small == Asset(1, MNT)
        assert small != large

    def test_no_unary_negation(self):
        """Test assets only change through checked add and subtract"""
        with pytest.raises(TypeError):
            -Asset(1, MNT)

    def test_compare_with_non_asset(self):
        """Test comparing with a plain number"""
        with pytest.raises(TypeError):
            Asset(1, MNT) < 5


class TestAssetStringForm:
    """Test formatting and parsing of "100.000 MNT" """

    def test_to_string(self):
        """Test formatting"""
        assert Asset(100000, MNT).to_string() == "100.000 MNT"
        assert Asset(5, MNT).to_string() == "0.005 MNT"
        assert Asset(-500, MNT).to_string() == "-0.500 MNT"
        assert Asset(42, Symbol("EOS", 0)).to_string() == "42 EOS"
        assert str(Asset(1234, MNT)) == "1.234 MNT"

    def test_from_string(self):
        """Test parsing"""
        asset = Asset.from_string("40.000 MNT")
        assert asset.amount == 40000
        assert asset.symbol == MNT

        assert Asset.from_string("7 EOS") == Asset(7, Symbol("EOS", 0))
        assert Asset.from_string("-0.500 MNT").amount == -500

    def test_from_string_precision_follows_fraction_digits(self):
        """Test parsed precision comes from the fraction digits"""
        assert Asset.from_string("40.00 MNT").symbol == Symbol("MNT", 2)

    def test_from_string_malformed(self):
        """Test malformed asset strings"""
        with pytest.raises(InvalidAmount):
            Asset.from_string("abc MNT")
        with pytest.raises(InvalidAmount):
            Asset.from_string("40.000")
        with pytest.raises(InvalidAmount):
            Asset.from_string(40)

    def test_from_string_bad_code(self):
        """Test asset strings with a bad symbol code"""
        with pytest.raises(InvalidSymbol):
            Asset.from_string("1.000 mnt")
        with pytest.raises(InvalidSymbol):
            Asset.from_string("1.000 TOOLONGX")

    def test_from_string_out_of_range(self):
        """Test parsing an amount beyond int64"""
        with pytest.raises(InvalidAmount, match="64-bit"):
            Asset.from_string("10000000000000000.000 MNT")
