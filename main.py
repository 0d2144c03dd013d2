import sys

from rich.pretty import pprint

from helmsman import *
from helmsman.consoles import stdout

__prog__ = "team-demo"
__messages__ = {
    FaultCode.RESTRICTED_INVOKER: "Only players can do that.",
}

members = ["Alice", "Bob"]


@descriptor("invite", permission="team.invite", completer=lambda context: argument_completions(context, 1, ["Alex", "Charlie"]))
def invite(player, context):
    if (name := context.arg(0)) is None:
        player.send("Usage: /team invite <player>")
        return False
    members.append(name)
    player.send(f"Invited {name}.")
    return True


@descriptor("leave", restricted=True)
def leave(player, context):
    if player.name in members:
        members.remove(player.name)
    player.send("You left the team.")
    return True


def info(context):
    context.invoker.send("Members: " + ", ".join(members))
    return True


host = ConsoleHost("team")
registry = CommandRegistry(host)
registry.register("team", (CommandTree.Builder()
                           .base_permission("team.use")
                           .usage("Usage: /team <info|invite|leave>")
                           .command("info", info)
                           .descriptors({"invite": invite, "leave": leave})
                           .build()))


if __name__ == '__main__':
    player = ConsoleInvoker("Alice", ("team.use", "team.invite"), principal=True)
    pprint(registry.tree("team"))
    stdout.print(registry.tree("team"))
    for line in sys.argv[1:] or ["team", "team info", "team invite Charlie", "team leave", "guild"]:
        stdout.print(f"[bold]> {line}[/bold]")
        host.dispatch(player, line)
    for line in ("te", "team ", "team in", "team invite "):
        stdout.print(f"[dim]complete {line!r}[/dim]", host.complete(player, line))
