"""Request handling core shared by the routers.

Contains:
- config.py: immutable server configuration
- errors.py / responses.py: error codes and the JSON response envelope
- urls.py / auth.py / actions.py: path tokenizer, Basic auth, POST actions
- deps.py: FastAPI dependencies
"""
