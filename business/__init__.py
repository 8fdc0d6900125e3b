"""Business services on top of the database facade.

- accounts: sign-up, login, profile and password changes
- records: role-scoped income and expense CRUD
- documents: uploads, downloads and document search
- notifications: admin email notifications for new records
- fetchers: concurrent record reads for the analytics views
"""
