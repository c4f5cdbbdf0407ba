"""
Konecte: bot inmobiliario de WhatsApp.

Clasifica avisos de grupos con IA, los guarda en Google Sheets, cruza
ofertas nuevas contra alertas de búsqueda y conversa con los usuarios.
"""

__version__ = "1.0.0"
