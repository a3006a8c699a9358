"""Monthly number-draw lottery: draw settlement, entries and subscriptions."""
