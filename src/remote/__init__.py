"""Remote access layer.

This package talks to the host application's metadata API and
captures context payloads from intercepted session requests.
"""
