"""
bilitui - Client terminal pour la plateforme video Bilibili.

Ce package fournit la couche d'acces authentifie a l'API Bilibili
(signature WBI, connexion par QR code, client avec retry) ainsi que
l'orchestration de la lecture video via un lecteur externe (mpv).

Architecture : Hexagonale (Ports et Adaptateurs)
- core/ : Couche domaine (entités, ports, exceptions)
- services/ : Couche application (session, lecture, cache des flux, prefetch)
- adapters/ : Couche infrastructure (CLI, clients API, lecteur mpv)
- infrastructure/ : Persistance SQLite (session, historique de lecture)
"""

__version__ = "0.1.0"
