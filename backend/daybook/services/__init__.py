# Services package init
"""
Daybook Backend — Services Layer
=================================

What:  Business logic between routes (HTTP) and the storage manager.
How:   Stateless services; the StorageAvailabilityManager is passed per call.

Service Inventory:
    - PostService: list/search, get, create, update, delete, categories
    - CommentService: list, add, delete comments on a post
"""
