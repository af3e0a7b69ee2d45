"""Domain layer for khata: entities, category taxonomy and services.

Services are imported from their modules (``khata.domain.transaction`` etc.)
so that the database layer can depend on ``khata.domain.entities`` without
import cycles.
"""
