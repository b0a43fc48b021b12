"""Offboarding System package.

Organized by feature modules (employees, resignations) with a thin Flask
controller layer over service/repository layers. The resignation module owns
the three-level approval workflow (manager -> hr -> admin).
"""
