"""auth/ -- Authentication and authorization core for sqlauth.

models.py        Credentials, Principal, HashRecord
hashing.py       pluggable HashStrategy implementations
verifier.py      CredentialVerifier (username/password -> Principal)
checker.py       AuthorizationChecker (role / permission membership)
serialization.py Principal wire format
provider.py      SQLAuth facade
errors.py        error taxonomy

Layer rule: auth/ imports core/ and the db.executor protocol only (type
checking). Concrete executors are injected, never imported at module load.
"""
