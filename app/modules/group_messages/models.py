# Supabase table: group_messages
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

group_messages:
- id: uuid (primary key, default: gen_random_uuid())
- group_id: uuid (foreign key to groups.id, not null, indexed)
- sender_id: uuid (user_profiles.id, not null) - lookup only, no cascade
- text: text (nullable, trimmed)
- media: jsonb (nullable)
    {
      "url": "https://...",
      "type": "image" | "file",
      "key": "group-media/group-<group_id>-<ms>.<ext>",
      "mimetype": "image/png",
      "size": 12345
    }
- created_at: timestamp (default: now(), indexed together with group_id)
- check constraint: text is not null or media is not null

Messages are listed newest first at the query layer; see
GroupMessageService.list_messages for the order returned to clients.
"""
