"""Contactbook: contacts with sharing over a generic CRUD layer."""

__version__ = "1.0.0"
