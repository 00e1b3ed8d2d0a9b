"""
Credential/session subsystem:
- passwords: argon2 hashing (PasswordHasher)
- tokens: signed access tokens (TokenSigner)
- credentials: Authorization / API key header parsing
- service: login, refresh, logout, authenticate (AuthenticationService)
- decorators: Flask route guards
"""
