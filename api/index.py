from mangum import Mangum

from carebook.api import create_app

app = create_app(root_path="/api")

handler = Mangum(app)
