"""
StorySlip widget service entry point.
"""
import os
import sys
import traceback

print("[StorySlip] ========================================")
print("[StorySlip] Starting StorySlip Widgets v1.0.0")
print("[StorySlip] ========================================")

# Default to production for container deployment
config_name = os.getenv('FLASK_ENV', 'production')
print(f"[StorySlip] Config: {config_name}")
print(f"[StorySlip] PORT: {os.getenv('PORT', 'not set')}")
print(f"[StorySlip] DATABASE_URL: {'set' if os.getenv('DATABASE_URL') else 'NOT SET'}")
print(f"[StorySlip] REDIS_URL: {'set' if os.getenv('REDIS_URL') else 'NOT SET (in-memory cache)'}")

try:
    from storyslip import create_app
    app = create_app(config_name)
    print(f"[StorySlip] App created, {len(list(app.url_map.iter_rules()))} routes")
except Exception as e:
    print(f"[StorySlip] FATAL ERROR during app creation: {e}")
    traceback.print_exc()
    sys.exit(1)

if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=os.getenv('FLASK_ENV') == 'development'
    )
