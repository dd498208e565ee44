"""
ASGI entrypoint: expose `app` pour les process managers / déploiements.

- En production, un process manager (ex: gunicorn -k uvicorn.workers.UvicornWorker) importe
  `donation_relay.asgi:app`.
- Toute la configuration (routes, middlewares, collaborateurs) est centralisée dans
  donation_relay.app; ce fichier ne fait qu'exposer l'instance.
"""

from donation_relay.app import app

if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run(
        "donation_relay.asgi:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "4242")),
        reload=True,
    )
