import sys
import logging
import uvicorn

logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO,
    handlers=[logging.StreamHandler(sys.stdout)]
)

def main():
    uvicorn.run("attendee_network.main:app", host="0.0.0.0", port=8000, log_config=None)

if __name__ == '__main__':
    main()
