"""Errores de los servicios externos consumidos por el bot."""


class ClientError(Exception):
    """Falla de un servicio externo (HTTP, timeout, respuesta inválida)."""


class EntitlementError(ClientError):
    """No se pudo verificar el acceso del usuario."""


class ListingsServiceError(ClientError):
    """La plataforma rechazó o no recibió la publicación."""


class TransportError(ClientError):
    """No se pudo entregar un mensaje."""
