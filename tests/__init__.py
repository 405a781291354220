"""
Test suite for usdx-protocol

Contains:
- tests/unit/ : Unit tests for ledger components, relayer and the hub → spoke scenario
"""
