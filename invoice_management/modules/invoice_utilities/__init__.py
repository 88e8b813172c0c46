"""Pure business core for invoices: money arithmetic, status rules and the workflows that apply them."""
