"""Tests for the exception hierarchy and structural validators."""

import pytest

from basalgate.errors import (
    BasalGateError,
    ComponentError,
    ConfigurationError,
    UnknownVariableError,
    validate_pool_count,
    validate_same_shape,
)


class TestExceptionHierarchy:
    def test_all_derive_from_base(self):
        for exc_cls in (ComponentError, ConfigurationError, UnknownVariableError):
            assert issubclass(exc_cls, BasalGateError)

    def test_component_error_message(self):
        err = ComponentError("PFCmntD", "not built")
        assert err.component_name == "PFCmntD"
        assert str(err) == "[PFCmntD] not built"

    def test_unknown_variable_is_key_error(self):
        err = UnknownVariableError("MtxGo", "Bogus", ["Act", "DA"])
        assert isinstance(err, KeyError)
        assert err.var_name == "Bogus"
        assert str(err).startswith("MtxGo: variable named 'Bogus' not found")


class TestValidators:
    def test_pool_count_match(self):
        validate_pool_count("A", 4, "B", 4)

    def test_pool_count_mismatch(self):
        with pytest.raises(ConfigurationError, match="pools"):
            validate_pool_count("A", 4, "B", 3)

    def test_shape_mismatch(self):
        with pytest.raises(ConfigurationError):
            validate_same_shape("PV", (1, 2), "Rcv", (2, 1))
