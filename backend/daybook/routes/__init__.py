# Routes package init
"""
Daybook Backend — API Routes Package
=====================================

Route Inventory:
    - posts.py:     GET/POST          /api/posts
                    GET/PATCH/DELETE  /api/posts/{id}
                    GET               /api/categories
    - comments.py:  GET/POST          /api/posts/{id}/comments
                    DELETE            /api/posts/{id}/comments/{comment_id}
    - health.py:    GET               /health

Design Principle:
    Routes are THIN. They extract the identity and request data, call a
    service with the storage manager, and pick the status code.
"""
