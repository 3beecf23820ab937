"""Concrete preview hosts."""
