"""Image storage.

- operations.py: the `ImageOperations` contract the dispatcher calls into
- filestore.py: default implementation keeping images as plain files
"""
