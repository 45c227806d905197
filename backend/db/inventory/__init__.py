"""
Inventory ledger.

Models:
- InventoryEvent (append-only record of every stock change on an ingredient)

The current stock itself lives on Ingredient.current_stock; every write to it
goes through services.ledger.apply_stock_change, which appends one event.
"""
