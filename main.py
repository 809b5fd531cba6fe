from rich.pretty import pprint

from bosun import *

app = application().show_help_on_not_found().help()


@app.command("echo", lambda echo: echo.describe("Echoes the input")).invoke
def echo(record, stdout):
    stdout.write(" ".join(record._) + "\n")


@app.command("tree", lambda tree: tree.describe("Shows how the command tree is declared")).invoke
def tree(record, stdout):
    pprint(app, console=console(stdout))


if __name__ == '__main__':
    # Resolved outcomes exit with 0; an unhandled fault exits with 1 on its own.
    app.exec()
