"""
Core domain models, mathematical primitives, contracts and errors.

This module contains the foundational building blocks that are independent
of any particular domain host (hub, spoke) or transport.
"""
