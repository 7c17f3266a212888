"""Fixed vocabularies used by fake value generators.

The lists are part of the deterministic output contract: changing them
changes every generated value for a given seed.
"""

from __future__ import annotations

FIRST_NAMES = (
    "Ada", "Alan", "Alice", "Amara", "Andre", "Anna", "Arjun", "Beatriz", "Ben", "Carla",
    "Chen", "Chloe", "Daniel", "Dara", "Elena", "Emil", "Farah", "Felix", "Grace", "Hana",
    "Hugo", "Ines", "Ivan", "Jade", "Jonas", "Kai", "Kenji", "Lara", "Leo", "Lina",
    "Luca", "Maya", "Mateo", "Mira", "Nadia", "Noah", "Olga", "Omar", "Paula", "Priya",
    "Quinn", "Rafael", "Rosa", "Sam", "Sara", "Tariq", "Tessa", "Uma", "Victor", "Yara",
)

LAST_NAMES = (
    "Abara", "Berg", "Castillo", "Dubois", "Eriksen", "Fischer", "Garcia", "Haddad",
    "Ito", "Jensen", "Kowalski", "Larsen", "Moreau", "Nakamura", "Okafor", "Petrov",
    "Quist", "Rossi", "Silva", "Tanaka", "Ueda", "Varga", "Weber", "Xu", "Yilmaz", "Zhou",
)

EMAIL_DOMAINS = (
    "example.com",
    "example.net",
    "example.org",
    "mail.example.com",
)
