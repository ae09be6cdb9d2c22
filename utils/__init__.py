"""
Helpers for the salon booking backend: OTP policy, storage, mail, change feed
"""
