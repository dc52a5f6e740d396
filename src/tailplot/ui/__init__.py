"""Interactive terminal front end: controller, keyboard and screen."""
