"""Goal-contract lifecycle storage (`ledger`), used by `conduit.routes.contract`."""
