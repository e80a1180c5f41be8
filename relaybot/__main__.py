from relaybot.main import run

run()
