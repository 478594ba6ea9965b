"""
Retrocast — Persistence Core for a Guild/Channel Chat Service
==============================================================
Relational data-access and consistency layer for users, guilds, channels,
roles, members, messages, direct messages, reactions, read state, voice
presence, invites and bans.  Transport, auth and process wiring live
elsewhere and consume the repositories exposed here.

Package layout::

    retrocast/
    ├── config.py          # YAML + env → typed config
    ├── errors.py          # StoreError taxonomy + SQLAlchemy translation
    ├── schemas.py         # pydantic models (string-encoded snowflakes)
    ├── snowflake.py       # Time-sortable 64-bit id generator
    ├── database/
    │   ├── engine.py      # Engine, sessions, async bridge
    │   ├── models.py      # All ORM models (16 tables)
    │   ├── upsert.py      # Dialect-aware INSERT … ON CONFLICT
    │   └── seed.py        # Demo data seeder
    └── stores/
        ├── user_store.py     # Identity
        ├── guild_store.py    # Guilds, members, roles, bans, invites
        ├── channel_store.py  # Channels + permission overrides
        ├── message_store.py  # Messages, attachments, reactions
        ├── dm_store.py       # DM channels + recipients
        └── state_store.py    # Read state + voice state
"""

__version__ = "0.1.0"
