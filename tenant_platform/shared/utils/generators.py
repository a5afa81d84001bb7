"""Identifier generation for new records"""
from cuid2 import Cuid

# Stable once ids exist in storage
ID_LENGTH = 25

_id_generator = Cuid(length=ID_LENGTH)


def new_record_id() -> str:
    """Collision-resistant, URL-safe primary key (CUID2)"""
    return _id_generator.generate()
