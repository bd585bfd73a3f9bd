"""db/ -- SQLAlchemy Core repositories for users, authors, terms and snippets.

Pattern: Repository + Data Mapper. Each *Store class is a repository over
one entity family; the _row_to_* functions map rows to core/models.py
dataclasses. Callers never touch SQL directly.

Every write touching more than one table runs in a single transaction
(engine.begin()), so a failure part-way leaves nothing behind.
"""
