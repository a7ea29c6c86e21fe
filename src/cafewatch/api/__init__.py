"""HTTP/JSON interface for cafewatch.

Exposes the presence registry, naming service and launch coordinator to
terminals and to the operator panel.
"""
