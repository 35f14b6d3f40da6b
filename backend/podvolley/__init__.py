"""Pod volleyball tournament API: registration, pool play, standings and double-elimination brackets."""
