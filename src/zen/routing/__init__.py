"""Routing: trie router for page endpoints and the action surface.

Routes are registered while the app is set up and compiled into an
immutable lookup structure when it freezes.
"""
