"""
Planet Patrol review backend.

Keeps in-memory snapshots of the candidate (TIC) documents and of the
evidence folder hierarchy fresh in the background, and serves reviewer
dispositions, file lookups and CSV exports from them over FastAPI.
"""
