"""A FastAPI stand-in for Discord's current-user endpoint.

Used for local smoke runs of the CLI and for end-to-end tests through
httpx's ASGI transport; it never talks to the real provider.
"""
