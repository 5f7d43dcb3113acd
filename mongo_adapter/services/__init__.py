"""
Adapter services: caller-facing adapter and join emulation.
"""
