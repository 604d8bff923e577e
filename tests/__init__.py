"""
Test Suite for First Order Node Models

Comprehensive tests for:
- Numeric comparison utilities
- Fixed and variable node model inputs
- Tampère node model algorithm and invariants
- Node model updates on network nodes
"""
