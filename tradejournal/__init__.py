"""Trading journal: trade storage, performance analytics and a JSON API."""
