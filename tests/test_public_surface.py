"""Test public API surface - ensure imports work correctly and no side effects.

This test verifies:
- typebridge.api exposes generate, verify, inspect
- the package root re-exports them
- _internal modules are not part of __all__
"""

import types


def test_api_exports_core_functions():
    """Test that typebridge.api exports generate, verify, inspect."""
    from typebridge.api import generate, inspect, verify

    for func in (generate, verify, inspect):
        assert isinstance(func, types.FunctionType)


def test_root_exports_match_api():
    import typebridge
    from typebridge import api

    assert typebridge.generate is api.generate
    assert typebridge.verify is api.verify
    assert typebridge.inspect is api.inspect
    for name in typebridge.__all__:
        assert hasattr(typebridge, name), name


def test_internal_not_exported():
    import typebridge

    assert not any(name.startswith("_internal") for name in typebridge.__all__)
    assert "pipeline" not in typebridge.__all__


def test_error_codes_are_strings():
    from typebridge import ErrorCode
    from typebridge.codes import EXIT_CODES, FATAL_CODES

    assert ErrorCode.NO_MODELS_FOUND == "NO_MODELS_FOUND"
    assert set(EXIT_CODES) == set(FATAL_CODES)
