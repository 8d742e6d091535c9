"""Core logic for Entra ID user administration.

Module Structure:
    - graph/        : Microsoft Graph client and user lifecycle operations
    - otp.py        : One-time-password login challenge
    - session.py    : Local session token issuer
    - mailer.py     : SMTP delivery of OTP codes
    - validators.py : Prompt and argument validation

Usage Pattern:
    Modules are not auto-imported; import explicitly when needed:
        from entra_admin.core.graph import GraphClient, UserService
        from entra_admin.core.otp import OtpChallengeService
        from entra_admin.core.session import SessionTokenIssuer
"""
