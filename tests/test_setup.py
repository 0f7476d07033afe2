"""Test that the project setup is working correctly."""

import polymarket_signal_engine


def test_version() -> None:
    """Test that version is defined."""
    assert polymarket_signal_engine.__version__ == "0.1.0"


def test_import_modules() -> None:
    """Test that all submodules can be imported."""
    from polymarket_signal_engine import detector
    from polymarket_signal_engine import ingestor
    from polymarket_signal_engine import learning
    from polymarket_signal_engine import pipeline
    from polymarket_signal_engine import profiler
    from polymarket_signal_engine import signals
    from polymarket_signal_engine import storage

    # Just verify imports work
    assert detector is not None
    assert ingestor is not None
    assert learning is not None
    assert pipeline is not None
    assert profiler is not None
    assert signals is not None
    assert storage is not None
