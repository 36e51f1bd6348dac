"""Default contents for generated artifacts."""

from __future__ import annotations

from ..config import StackConfig
from .secret_store import PLACEHOLDER_TOKEN

MOSQUITTO_CONF = """\
listener 1883
listener 9001
protocol websockets
allow_anonymous true
persistence true
persistence_location /mosquitto/data/
log_dest file /mosquitto/log/mosquitto.log
"""

NGINX_CONF = """\
server {
    listen 80;
    root /var/www/html/public;
    index index.php index.html;

    location / {
        try_files $uri $uri/ /index.php?$query_string;
    }

    location ~ \\.php$ {
        fastcgi_pass laravel-php:9000;
        fastcgi_index index.php;
        include fastcgi_params;
        fastcgi_param SCRIPT_FILENAME $document_root$fastcgi_script_name;
    }
}
"""

LARAVEL_DOCKERFILE = """\
FROM php:8.2-fpm
RUN apt-get update && apt-get install -y \\
    git curl zip unzip libpng-dev libonig-dev libxml2-dev \\
    && docker-php-ext-install pdo_mysql mbstring exif pcntl bcmath gd
COPY --from=composer:latest /usr/bin/composer /usr/bin/composer
WORKDIR /var/www/html
"""

# Clears half-written CLI config left by an interrupted first-run setup,
# which otherwise makes the packaged entrypoint loop forever.
INFLUXDB_ENTRYPOINT = """\
#!/bin/sh
set -eu

rm -f /root/.influxdbv2/configs 2>/dev/null || true
rm -rf /root/.influxdbv2 2>/dev/null || true

if [ "$#" -eq 0 ]; then
  set -- influxd
fi

exec /entrypoint.sh "$@"
"""

HA_CONFIGURATION = """\
homeassistant:
  name: Home
  unit_system: metric
  time_zone: {timezone}

default_config:

lovelace:
  mode: yaml
  dashboards:
    main-dashboard:
      mode: yaml
      filename: dashboards/main_dash.yaml
      title: Main Dashboard
      icon: mdi:home
      show_in_sidebar: true
"""

HA_SECRETS = """\
# Add your secrets here
"""

PLACEHOLDER_DASHBOARD = """\
views:
  - title: Home
    cards:
      - type: markdown
        content: "## Welcome to Homestack!\\nAdd your cards here."
"""


def render_ha_configuration(config: StackConfig) -> str:
    return HA_CONFIGURATION.format(timezone=config.timezone)


def render_env(config: StackConfig) -> str:
    """Seed ``.env``; the token stays a placeholder until first run."""
    entries = {
        "TZ": config.timezone,
        "INFLUXDB_USER": config.influxdb_user,
        "INFLUXDB_PASSWORD": config.influxdb_password,
        "INFLUXDB_ORG": config.influxdb_org,
        "INFLUXDB_BUCKET": config.influxdb_bucket,
        "INFLUXDB_TOKEN": PLACEHOLDER_TOKEN,
    }
    return "".join(f"{key}={value}\n" for key, value in entries.items())
