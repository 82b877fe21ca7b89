from polywhale.cli.app import run

run()
