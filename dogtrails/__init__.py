import requests

# Shared HTTP session for provider calls (connection pooling)
http_session = requests.Session()
http_session.headers.update({'User-Agent': 'DogTrails/1.0'})
