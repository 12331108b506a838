"""
API server package — HTTP interface over the verification engine.

Turns JSON requests into payment claims and verdicts into JSON; maps engine
errors to status codes. Holds no verification logic of its own.
"""
