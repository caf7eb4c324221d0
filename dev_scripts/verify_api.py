import requests
import time

BASE_URL = "http://localhost:8000/api"

# Three orthogonal tapered struts meeting at the origin
payload = {
    "struts": [
        [[0, 0, 0], [10, 0, 0]],
        [[0, 0, 0], [0, 10, 0]],
        [[0, 0, 0], [0, 0, 10]],
    ],
    "start_radii": [1.0, 1.0, 1.0],
    "end_radii": [0.5, 0.5, 0.5],
    "sides": 8,
    "tolerance": 0.001,
    "name": "corner"
}

cell_payload = {
    "curves": [
        [[0, 0, 0], [1, 0, 0]], [[0, 0, 0], [0, 1, 0]], [[0, 0, 0], [0, 0, 1]],
        [[1, 0, 0], [1, 1, 0]], [[1, 0, 0], [1, 0, 1]], [[0, 1, 0], [1, 1, 0]],
        [[0, 1, 0], [0, 1, 1]], [[0, 0, 1], [1, 0, 1]], [[0, 0, 1], [0, 1, 1]],
        [[1, 1, 0], [1, 1, 1]], [[1, 0, 1], [1, 1, 1]], [[0, 1, 1], [1, 1, 1]],
    ]
}


if __name__ == "__main__":
    try:
        # 1. Cell definition (synchronous)
        print("Sending POST request to define a cubic cell...")
        response = requests.post(f"{BASE_URL}/v1/cells", json=cell_payload)
        if response.status_code == 200:
            cell = response.json()
            print(f"[SUCCESS] {cell['message']} nodes={len(cell['nodes'])} struts={len(cell['struts'])}")
        else:
            print(f"[ERROR] Cell request failed: {response.text}")

        # 2. Start solidification
        print("Sending POST request to solidify struts (async task)...")
        response = requests.post(f"{BASE_URL}/v1/solidify", json=payload)

        if response.status_code == 200:
            task_id = response.json().get("task_id")
            print(f"[SUCCESS] Task started! Task ID: {task_id}")

            # 3. Poll for status
            print("Polling for status...")
            while True:
                r_status = requests.get(f"{BASE_URL}/v1/tasks/{task_id}")
                if r_status.status_code != 200:
                    print(f"[ERROR] Failed to get status: {r_status.status_code}")
                    break

                status_data = r_status.json()
                state = status_data.get("status")
                print(f"Status: {state} ({status_data.get('progress')}%) - {status_data.get('message')}")

                if state == "completed":
                    result = status_data.get("result", {})
                    print(f"[SUCCESS] {result['n_faces']} faces, watertight={result['watertight']}")
                    for failure in result.get("failures", []):
                        print(f"[WARN] Junction {failure['node_index']}: {failure['reason']}")

                    stl_url = f"http://localhost:8000{result['stl_url']}"
                    r_stl = requests.head(stl_url)
                    if r_stl.status_code == 200:
                        print(f"[SUCCESS] STL file is downloadable! ({stl_url})")
                    else:
                        print(f"[ERROR] STL download failed: {r_stl.status_code}")
                    break

                elif state == "failed":
                    print(f"[ERROR] Task failed: {status_data.get('message')}")
                    break

                time.sleep(1)

        else:
            print(f"[ERROR] API request failed: {response.text}")

    except requests.exceptions.ConnectionError as e:
        print(f"[ERROR] Verification script failed: {e}")
        print("Ensure the backend server is running on port 8000.")
