"""
Listing-system (ATS) classification.

- enums: ListingSystem tags and which of them expose a read API
- signatures: domain/markup/keyword signatures per listing system
- classifier: URL + HTML scoring that tags a career page
"""
