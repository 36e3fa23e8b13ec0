"""Domain layer for chaibook application.

Services are imported from their modules directly; importing them here would
create a cycle with chaibook.database.base, which imports the entities.
"""
