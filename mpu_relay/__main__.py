from mpu_relay.main import run

run()
