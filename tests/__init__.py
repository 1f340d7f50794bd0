"""Test suite for formstate.

This package contains tests for:
- Field rules (every message, first-failure ordering)
- Form schemas and definition loading
- Field store touched gating and resets
- Full-form validation
- Submission lifecycle and reset timer
- Event emission
- End-to-end scenarios through FormRuntime
"""
