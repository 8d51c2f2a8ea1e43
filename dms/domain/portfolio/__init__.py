"""
Portfolio bounded context: domain layer.

Accounts, trades, dividend deposits, the symbol universe and the
screener, plus the pure rules for importing, filtering and summarising
them.
"""
