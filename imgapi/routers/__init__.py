"""Route groups for the image server.

- images: everything below /images
- channels: image channel listing
- health: ping
"""
