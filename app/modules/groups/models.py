# Supabase tables: groups, group_members
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

groups:
- id: uuid (primary key, default: gen_random_uuid())
- name: text (not null)
- created_by: uuid (foreign key to user_profiles.id, not null) - the admin who created it
- created_at: timestamp (default: now())

group_members:
- id: uuid (primary key, default: gen_random_uuid())
- group_id: uuid (foreign key to groups.id, not null)
- user_id: uuid (foreign key to user_profiles.id, not null)
- created_at: timestamp (default: now())
- unique constraint on (group_id, user_id)

GroupResponse.members is assembled from group_members ordered by created_at.
Deleting a group deletes its rows in group_members and group_messages first
(see app/modules/group_messages/models.py).
"""
