"""Infrastructure layer of the sharing app.

- Blob area: per-group directories on the local file system
- Membership store: transactional access to groups, members and files
"""
