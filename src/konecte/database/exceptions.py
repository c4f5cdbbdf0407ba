"""Errores del almacenamiento en planillas."""


class StoreError(Exception):
    """Falla al leer o escribir en la planilla."""


class StorePermissionError(StoreError):
    """La service account no tiene permisos sobre la planilla (HTTP 403)."""


def is_permission_error(error: Exception) -> bool:
    """Detecta errores de permisos por el contenido del error."""
    response = getattr(error, "response", None)
    if getattr(response, "status_code", None) == 403:
        return True
    text = str(error)
    return "PERMISSION_DENIED" in text or "does not have permission" in text
