"""Browser session modules (Playwright).

Provides the persistent Chromium session (``session``), the named-page
registry (``registry``), CDP target resolution (``targets``), popup
discovery (``popup``), and the polling primitives (``waits``) and
recognizer chains (``recognizers``) that the wallet flows are built on.
"""
