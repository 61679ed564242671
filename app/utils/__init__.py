"""
Common utilities package for the WritersInn backend.

- auth: user and admin JWTs, magic-link tokens, secret comparison
- logger: per-run rotating log files via `setup_logger`
"""
