"""Run orchestration and collaborator interfaces.

Import from the submodules directly::

    from bidding.engine.orchestrator import BiddingEngine, RunMode
    from bidding.engine.collaborators import CatalogueRepository
"""
