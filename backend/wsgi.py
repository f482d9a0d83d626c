from kitchen import create_app

app = create_app()
