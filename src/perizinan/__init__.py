"""Perizinan package.

School leave-pass administration: submitting staff (Guru Piket) file permission
requests for students, approving staff (Wakil) decide them, and administrators
manage accounts, the student roster, duty schedules and reports.

The package is organized by feature modules (identity, auth, requests, roster, ...)
with a thin Flask controller layer over service classes that depend on store
protocols.
"""
