"""Item generation service.

Generates the sellable items (variants) of a product from its selected
option values and provisions their stock rows.
"""
