"""Service-charge core: demand generation, payments, penalties and reporting."""
