from model_runner_sdk import ModelRunnerClient

client = ModelRunnerClient()
client.pull("ai/smollm2", progress=print)
reply = client.chat("ai/smollm2", "How tall is Michael Jordan?")
print()
print(f"{len(reply['content'])} characters received")
