from bevpos import create_app

app = create_app()
