"""Storage - row types and the digest store"""
