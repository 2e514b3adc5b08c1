"""db/ -- Data access for sqlauth.

executor.py: async query execution used by the auth core at request time.
schema.py: default table layout plus a synchronous seeding repository.

Layer rule: db/ may import auth.errors and auth.hashing (for seeding), never
auth.verifier / auth.checker / auth.provider.
"""
