# Inventory Metrics - Monthly financial KPIs engine for inventory businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Inventory Metrics
-----------------

A Python engine computing monthly accounting KPIs for multi-tenant
inventory/ERP businesses and persisting them as a keyed time series.

Main capabilities:
- pure computation of revenue, cost, margin, inventory and sales KPIs
  from transactions, expenses and stock valuations (formulas.py),
- a per-run data-quality assessment attached to every metric set,
- an explicit, ordered catalog of persisted metrics (catalog.py),
- idempotent, best-effort synchronization of each metric as a keyed
  upsert, tolerating partial write failures (sync.py),
- a monthly orchestrator validating the target month, fetching raw data
  from injected collaborators and chaining opening/closing stock from
  one month to the next (orchestrator.py),
- a SQLite implementation of every collaborator (db.py),
- CSV import helpers and a small command-line interface.

Computation (formulas), persistence (db / sync), configuration (TOML) and
presentation (CLI) are kept separate so the engine can be embedded in any
web or batch context.

Version: 0.2.0

Usage:
    python -m inventory_metrics.cli --help
"""

__all__ = ["formulas", "catalog", "sync", "orchestrator", "db"]

__version__ = "0.2.0"
