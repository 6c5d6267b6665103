"""HTTP blueprints, one package per resource. Registered in typing_center.create_app()."""
