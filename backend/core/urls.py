"""
Root URL configuration.

The ledger engine is consumed through its service layer; HTTP routes are
registered by the API collaborator.
"""

urlpatterns = []
