# Services package init
"""
RecordHub Backend - Services Layer
===================================

What:  Business logic between routes (HTTP) and MongoDB / the filesystem.

Service Inventory:
    - RecordService: record CRUD, CSV export, exact-value duplicate groups
    - UserService: profile lookup with credential fields removed
    - FileService: upload validation, storage, listing and deletion

Routes stay thin: they pull the database handle or file service from the
app, call a service method, and shape the HTTP response.
"""
