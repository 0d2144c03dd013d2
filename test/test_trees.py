"""
Command tree behavioral tests (registration, execution, completion, builder).

Scope
- Validate the execution outcomes: handlers, argument fallback and notices.
- Validate permission layering (base permission first, then node permission).
- Validate completion (child names, custom completers, prefix filtering).
- Validate builder invariants and batch skipping.
- Validate concurrent registration.

Conventions
- Test method names follow CamelCase per project convention.
- Invokers are ConsoleInvokers printing into a throwaway buffer; sent notices
  are read back from invoker.messages.
"""
import io
import unittest
from threading import Barrier, Thread
from unittest import TestCase

from rich.console import Console

from helmsman import *

USAGE = "Usage: /team <info|invite|leave>"
DENIED = "You don't have permission to use this command!"
PLAYERS_ONLY = "This command can only be used by players."


def invoker(*permissions, principal=True):
    return ConsoleInvoker("Steve", permissions or ("*",), principal=principal, console=Console(file=io.StringIO()))


class Recorder:
    """Callable recording every call it receives."""

    def __init__(self):
        self.calls = []

    def __call__(self, *arguments):
        self.calls.append(arguments)
        return True


class InvokeTest(TestCase):
    """Execution outcomes of CommandTree.invoke()."""

    def setUp(self):
        self.info = Recorder()
        self.invite = Recorder()
        self.leave = Recorder()
        self.tree = (CommandTree.Builder()
                     .base_permission("team.use")
                     .usage(USAGE)
                     .command("team info", self.info)
                     .restricted_command("team invite", self.invite, "team.invite")
                     .restricted_command("team leave", self.leave)
                     .build())

    def testGenericHandlerReceivesContext(self):
        player = invoker()
        self.assertTrue(self.tree.invoke(player, ["team", "info"]))
        (context,), = self.info.calls
        self.assertIs(context.invoker, player)
        self.assertEqual(context.matched, ("team", "info"))
        self.assertEqual(context.remaining, ())
        self.assertEqual(player.messages, ())

    def testRestrictedHandlerReceivesPrincipal(self):
        player = invoker()
        self.tree.invoke(player, ["team", "invite", "Alice"])
        (principal, context), = self.invite.calls
        self.assertIs(principal, player)
        self.assertEqual(context.remaining, ("Alice",))

    def testRestrictedHandlerRejectsNonPrincipals(self):
        console = invoker(principal=False)
        self.assertTrue(self.tree.invoke(console, ["team", "leave"]))
        self.assertEqual(self.leave.calls, [])
        self.assertEqual(console.messages, (PLAYERS_ONLY,))

    def testMatchingIsCaseInsensitive(self):
        self.tree.invoke(invoker(), ["TEAM", "Info", "now"])
        (context,), = self.info.calls
        self.assertEqual(context.matched, ("TEAM", "Info"))
        self.assertEqual(context.remaining, ("now",))

    def testEmptyInputShowsUsage(self):
        player = invoker()
        self.assertTrue(self.tree.invoke(player, []))
        self.assertEqual(player.messages, (USAGE,))

    def testUnknownSubcommandShowsUsage(self):
        player = invoker()
        self.assertTrue(self.tree.invoke(player, ["team", "disband"]))
        self.assertEqual(player.messages, ("Unknown subcommand. " + USAGE,))

    def testUnknownRootShowsUsage(self):
        player = invoker()
        self.tree.invoke(player, ["party"])
        self.assertEqual(player.messages, ("Unknown subcommand. " + USAGE,))

    def testDeepestHandlerWinsOverShallowerOne(self):
        shallow, deep = Recorder(), Recorder()
        tree = CommandTree()
        tree.register_command("a b", shallow)
        tree.register_command("a b c", deep)
        tree.invoke(invoker(), ["a", "b", "c", "x"])
        self.assertEqual(shallow.calls, [])
        (context,), = deep.calls
        self.assertEqual(context.matched, ("a", "b", "c"))
        self.assertEqual(context.remaining, ("x",))

    def testHandlerlessNodeShadowsShallowerHandler(self):
        give = Recorder()
        tree = CommandTree.Builder().usage(USAGE).command("give", give).completer("give diamond", lambda context: ["5"]).build()
        player = invoker()
        self.assertTrue(tree.invoke(player, ["give", "diamond", "5"]))
        self.assertEqual(give.calls, [])
        self.assertEqual(player.messages, ("Unknown subcommand. " + USAGE,))

    def testBasePermissionIsCheckedFirst(self):
        player = invoker("team.invite")
        self.assertTrue(self.tree.invoke(player, ["team", "invite", "Alice"]))
        self.assertEqual(self.invite.calls, [])
        self.assertEqual(player.messages, (DENIED,))

    def testBasePermissionDeniesEmptyInput(self):
        player = invoker("other.use")
        self.tree.invoke(player, [])
        self.assertEqual(player.messages, (DENIED,))

    def testNodePermissionIsChecked(self):
        player = invoker("team.use")
        self.tree.invoke(player, ["team", "invite", "Alice"])
        self.assertEqual(self.invite.calls, [])
        self.assertEqual(player.messages, (DENIED,))

    def testNodeWithoutPermissionIsOpen(self):
        player = invoker("team.use")
        self.tree.invoke(player, ["team", "leave"])
        self.assertEqual(len(self.leave.calls), 1)

    def testHandlerResultDoesNotChangeOutcome(self):
        tree = CommandTree.Builder().command("fail", lambda context: False).build()
        self.assertTrue(tree.invoke(invoker(), ["fail"]))

    def testExecutorAdapterDropsLabel(self):
        player = invoker()
        self.assertTrue(self.tree.executor(player, "t", ["team", "info"]))
        self.assertEqual(len(self.info.calls), 1)

    def testTreeMessagesOverrideNotices(self):
        tree = (CommandTree.Builder()
                .base_permission("team.use")
                .messages({FaultCode.PERMISSION_DENIED: "Nope."})
                .command("team info", self.info)
                .build())
        player = invoker("nothing")
        tree.invoke(player, ["team", "info"])
        self.assertEqual(player.messages, ("Nope.",))


class ArgumentFallbackTest(TestCase):
    """Unconsumed tokens fall back to the deepest handler as arguments."""

    def setUp(self):
        self.team = Recorder()
        self.tree = CommandTree()
        self.tree.register_command("team", self.team)
        self.tree.register_command("team info", Recorder())

    def testUnknownTokenBecomesArgument(self):
        self.tree.invoke(invoker(), ["team", "kick", "Bob"])
        (context,), = self.team.calls
        self.assertEqual(context.matched, ("team",))
        self.assertEqual(context.remaining, ("kick", "Bob"))
        self.assertEqual(context.arg(1), "Bob")

    def testSegmentNamesAfterAMissStayArguments(self):
        self.tree.invoke(invoker(), ["team", "x", "info"])
        (context,), = self.team.calls
        self.assertEqual(context.remaining, ("x", "info"))


class CompleteTest(TestCase):
    """Completion outcomes of CommandTree.complete()."""

    def setUp(self):
        self.tree = (CommandTree.Builder()
                     .base_permission("team.use")
                     .command("team info", Recorder())
                     .restricted_command("team invite", Recorder(), "team.invite")
                     .restricted_command("team leave", Recorder())
                     .completer("team invite", lambda context: argument_completions(context, 1, ["Alice", "alex", "Bob"]))
                     .build())

    def testRootCompletion(self):
        self.assertEqual(self.tree.complete(invoker(), ["te"]), ["team"])

    def testEmptyTokensOfferRootChildren(self):
        self.assertEqual(self.tree.complete(invoker(), []), ["team"])

    def testChildNamesAreFilteredByPrefix(self):
        self.assertCountEqual(self.tree.complete(invoker(), ["team", "IN"]), ["info", "invite"])
        self.assertCountEqual(self.tree.complete(invoker(), ["team", ""]), ["info", "invite", "leave"])

    def testCustomCompleterWins(self):
        self.assertEqual(self.tree.complete(invoker(), ["team", "invite", "al"]), ["Alice", "alex"])
        self.assertEqual(self.tree.complete(invoker(), ["team", "invite", ""]), ["Alice", "alex", "Bob"])

    def testCompleterOnlyAnswersItsPosition(self):
        self.assertEqual(self.tree.complete(invoker(), ["team", "invite", "Alice", ""]), [])

    def testBasePermissionHidesEverything(self):
        self.assertEqual(self.tree.complete(invoker("team.invite"), ["team", ""]), [])

    def testNodePermissionHidesCompletions(self):
        self.assertEqual(self.tree.complete(invoker("team.use"), ["team", "invite", ""]), [])

    def testCompletionNeverRunsRestrictedHandlers(self):
        leave = Recorder()
        tree = CommandTree()
        tree.register_restricted_command("leave", leave)
        tree.complete(invoker(principal=False), ["leave", ""])
        tree.complete(invoker(), ["leave", ""])
        self.assertEqual(leave.calls, [])

    def testCompleterAdapterDropsLabel(self):
        self.assertEqual(self.tree.completer(invoker(), "t", ["team", "le"]), ["leave"])

    def testCompleterContextEndsWithPartial(self):
        seen = []
        tree = CommandTree()
        tree.register_command("invite", Recorder())
        tree.register_completer("invite", lambda context: seen.append(context) or ())
        tree.complete(invoker(), ["invite", "Alice", "Bo"])
        context, = seen
        self.assertEqual(context.matched, ("invite",))
        self.assertEqual(context.remaining, ("Alice", "Bo"))


class RegistrationTest(TestCase):
    """Registration surface of CommandTree."""

    def testLastWriteWins(self):
        first, second = Recorder(), Recorder()
        tree = CommandTree()
        tree.register_command("team info", first)
        tree.register_command("Team Info", second)
        tree.invoke(invoker(), ["team", "info"])
        self.assertEqual(first.calls, [])
        self.assertEqual(len(second.calls), 1)

    def testRestrictedReplacesGeneric(self):
        generic, restricted = Recorder(), Recorder()
        tree = CommandTree()
        tree.register_command("leave", generic, "team.leave")
        tree.register_restricted_command("leave", restricted)
        self.assertIsInstance(tree.root.child("leave").handler, RestrictedHandler)
        self.assertIsNone(tree.root.child("leave").permission)

    def testBlankPathIsRejected(self):
        tree = CommandTree()
        with self.assertRaises(BlankPathError) as context:
            tree.register_command("   ", Recorder())
        self.assertEqual(context.exception.code, FaultCode.BLANK_PATH)
        self.assertIsInstance(context.exception, ValueError)

    def testRejectedHandlerLeavesNoBranch(self):
        tree = CommandTree()
        with self.assertRaises(TypeError):
            tree.register_command("team info", "not callable")
        self.assertEqual(tree.root.names(), [])

    def testCompleterRequiresCallable(self):
        with self.assertRaises(TypeError):
            CommandTree().register_completer("team", ["Alice"])

    def testPathsListsExecutableNodes(self):
        tree = CommandTree()
        tree.register_command("team info", Recorder())
        tree.register_restricted_command("Team Leave", Recorder())
        tree.register_completer("team invite", lambda context: ())
        self.assertEqual(tree.paths(), ["team info", "team leave"])

    def testConcurrentRegistration(self):
        tree = CommandTree()
        barrier = Barrier(8)

        def work(worker):
            barrier.wait()
            for index in range(50):
                tree.register_command("team w%d c%d" % (worker, index), Recorder())

        threads = [Thread(target=work, args=(worker,)) for worker in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(tree.paths()), 400)
        self.assertEqual(len(tree.root.child("team").names()), 8)

    def testRichRendering(self):
        tree = CommandTree.Builder().usage(USAGE).command("team info", Recorder(), "team.info").build()
        console = Console(file=io.StringIO(), width=120)
        console.print(tree)
        output = console.file.getvalue()
        self.assertIn("info", output)
        self.assertIn("team.info", output)


class BuilderTest(TestCase):
    """Invariants enforced by CommandTree.Builder.build()."""

    def testEmptyTreeIsRejected(self):
        with self.assertRaises(EmptyTreeError):
            CommandTree.Builder().base_permission("team.use").build()

    def testCompleterOnlyTreeIsEmpty(self):
        with self.assertRaises(EmptyTreeError):
            CommandTree.Builder().completer("team", lambda context: ()).build()

    def testBlankBasePermissionIsRejected(self):
        with self.assertRaises(BlankPermissionError):
            CommandTree.Builder().base_permission("  ").command("team", Recorder()).build()

    def testMissingBasePermissionIsAllowed(self):
        tree = CommandTree.Builder().command("team", Recorder()).build()
        self.assertIsNone(tree.base_permission)
        self.assertEqual(tree.usage, DEFAULT_USAGE)

    def testBuilderIsSpentAfterBuild(self):
        builder = CommandTree.Builder().command("team", Recorder())
        builder.build()
        with self.assertRaises(SpentBuilderError):
            builder.build()
        with self.assertRaises(SpentBuilderError):
            builder.command("party", Recorder())

    def testFailedBuildCanBeRetried(self):
        builder = CommandTree.Builder()
        with self.assertRaises(EmptyTreeError):
            builder.build()
        tree = builder.command("team", Recorder()).build()
        self.assertEqual(tree.paths(), ["team"])

    def testBatchSkipsBlankAndMissingEntries(self):
        info = Recorder()
        with self.assertWarns(SkippedDescriptorWarning):
            tree = (CommandTree.Builder()
                    .commands({"": Recorder(), "team leave": None, "team info": info})
                    .build())
        self.assertEqual(tree.paths(), ["team info"])

    def testBatchPermissionAppliesToEveryEntry(self):
        tree = (CommandTree.Builder()
                .commands({"team info": Recorder()}, "team.info")
                .restricted_commands({"team leave": Recorder()}, "team.leave")
                .completers({"team invite": lambda context: ["Alice"]})
                .build())
        self.assertEqual(tree.root.child("team").child("info").permission, "team.info")
        self.assertEqual(tree.root.child("team").child("leave").permission, "team.leave")
        self.assertIsNotNone(tree.root.child("team").child("invite").completer)

    def testNoneBatchesAreIgnored(self):
        tree = CommandTree.Builder().commands(None).completers(None).command("team", Recorder()).build()
        self.assertEqual(tree.paths(), ["team"])

    def testMessagesMustBeKeyedByFaultCode(self):
        with self.assertRaises(TypeError):
            CommandTree.Builder().messages({"PERMISSION_DENIED": "Nope."})


if __name__ == "__main__":
    unittest.main()
