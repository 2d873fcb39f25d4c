"""
Orbit Catalog Sync.

Keeps the satellite catalog store (TLEs + radio transmitters) reconciled with
CelesTrak and SatNOGS, and marks decayed objects from the CelesTrak SATCAT.

Usage:
    uvicorn catalog_sync.main:app          # cron trigger endpoints
    python -m catalog_sync sync            # one-off TLE + transmitter run
    python -m catalog_sync decay           # one-off decay run

Environment variables:
    CRON_SECRET                 Shared bearer secret for the cron endpoints
    SUPABASE_URL                Catalog store base URL
    SUPABASE_SERVICE_ROLE_KEY   Catalog store service-role key
"""
