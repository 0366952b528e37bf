"""
Person Registry Backend — API Routes Package
==============================================

Route Inventory:
    - persons.py: /api/persons and /api/persons/{id} (CRUD)
    - health.py:  GET /health

Routes stay thin: pull data out of the request, call a service, pick the
status code. Business rules live in app/services.
"""
