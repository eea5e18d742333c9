from shopsettle import create_app

app = create_app()
