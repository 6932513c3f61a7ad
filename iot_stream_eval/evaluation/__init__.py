"""Sesión, ventana de medición y latencia sobre el stream."""
