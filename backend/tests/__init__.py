"""
Tests Pige CRM

Lancement (depuis la racine du dépôt):
    pytest

Aucun service externe requis: MongoDB et n8n sont simulés.
"""
