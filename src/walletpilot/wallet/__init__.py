"""Wallet extension automation: bootstrap, onboarding and the action controller.

Everything here drives the extension purely through its UI.  Markers and
selector chains live in ``selectors`` so that version drift in the
extension is handled in one place.
"""
