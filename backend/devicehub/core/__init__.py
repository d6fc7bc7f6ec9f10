# devicehub/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- bootstrap: Application initialization and default account creation
- clock: Timezone-aware UTC timestamps
- db: Database configuration and connection management
- errors: Error taxonomy and the HTTP error envelope
- housekeeping: Periodic OTP expiry sweep
- roles: Role enumeration and the Role Gate rules
- security: JWT tokens and one-time code hashing
"""
