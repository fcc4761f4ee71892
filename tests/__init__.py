"""
P2P Order ETL Test Suite

Run all tests:
    pytest

Run one module:
    pytest tests/test_pipeline.py
"""
