"""Project configuration package for the telehealth backend."""
