"""
User service package: accounts, password hashing and token issuance.
"""
