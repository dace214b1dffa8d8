"""
Order Execution Package
PaperTrade Virtual Trading Platform

Order evaluation, settlement, position projections and the pending
order sweeper. Import submodules directly; the ORM models depend on
``papertrade.execution.orders`` so this package stays import-light.
"""
