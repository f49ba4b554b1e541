"""Dishka scopes.

Two levels are enough here. APP holds the engine, the HTTP clients and the
pipeline scheduler whose lock makes runs single-flight. UOW wraps one database
session: every pipeline stage and every CLI command opens its own, and the
session commits when the scope exits without an exception.
"""

from dishka import BaseScope, new_scope


class Scope(BaseScope):  # type: ignore[misc]  # BaseScope is designed to be subclassed
    APP = new_scope("APP")
    UOW = new_scope("UOW")
