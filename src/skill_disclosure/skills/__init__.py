"""Skill catalogs and progressive disclosure."""
