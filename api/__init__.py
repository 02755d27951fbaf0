"""
FastAPI RESTful API for the Bookshelf service.

This module provides a REST API for:
- Adding, editing and removing books
- Listing books with name, reading and finished filters
- Fetching full book details
"""
