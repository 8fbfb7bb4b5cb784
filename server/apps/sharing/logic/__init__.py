"""Business logic of the sharing app.

Group lifecycle, memberships, file transfers, user removal and the
background reaper live here. Every class receives its store and blob
area explicitly; see ``server.apps.sharing.dependencies`` for wiring.
"""
