"""
Couche domaine (core).

Contient les entités métier, ports (interfaces abstraites) et la hiérarchie
d'exceptions. Cette couche n'a AUCUNE dépendance vers l'infrastructure
(adapters, frameworks, BDD).

Sous-packages :
- entities/ : Entités métier (Session, QRLoginAttempt, VideoRef, PlaybackSession)
- ports/ : Interfaces abstraites définissant les contrats pour les adaptateurs
- exceptions.py : Taxonomie des erreurs remontées aux appelants
"""
