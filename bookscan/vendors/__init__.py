"""Concrete decode engines and lookup clients."""
