# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant la création des tables (create_all) et l'import des routers.

from app.models.user import User  # noqa: F401
